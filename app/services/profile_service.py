"""Profile lookup service for role resolution."""

import asyncio

import structlog
from pydantic import ValidationError

from app.core.document_store import DocumentStore
from app.schemas.users import UserProfile

logger = structlog.get_logger(__name__)


class ProfileService:
    """
    Reads role-bearing profile documents.

    A missing document and a failed read are both reported as None; callers
    fall back to the default dashboard either way.
    """

    DEFAULT_COLLECTION = "users"
    DEFAULT_TIMEOUT_SECONDS = 10.0

    def __init__(
        self,
        store: DocumentStore,
        collection: str = DEFAULT_COLLECTION,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """Initialize with a document store, collection name and read timeout."""
        self.store = store
        self.collection = collection
        self.timeout = timeout

    async def get_profile(self, identity_id: str) -> UserProfile | None:
        """
        Fetch the profile document for an identity.

        Args:
            identity_id: Identity uid, which is also the document key

        Returns:
            Parsed profile, or None if missing, timed out, unreadable or malformed
        """
        try:
            data = await asyncio.wait_for(
                self.store.get_document(self.collection, identity_id),
                timeout=self.timeout,
            )
        except TimeoutError:
            logger.warning(
                "profile_lookup_timeout",
                uid=identity_id,
                timeout_seconds=self.timeout,
            )
            return None
        except Exception as e:
            logger.error("profile_lookup_failed", uid=identity_id, error=str(e))
            return None

        if data is None:
            logger.info("profile_document_missing", uid=identity_id)
            return None

        try:
            return UserProfile.from_document(identity_id, data)
        except ValidationError as e:
            logger.error("profile_document_malformed", uid=identity_id, error=str(e))
            return None
        except Exception as e:
            logger.error(
                "profile_document_unreadable",
                uid=identity_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

    async def get_role(self, identity_id: str) -> str | None:
        """
        Resolve the role string for an identity.

        The role is returned exactly as stored; normalisation is left to the router.

        Returns:
            The ``activeRole`` value, or None
        """
        profile = await self.get_profile(identity_id)
        role = profile.active_role if profile else None
        logger.info("profile_role_resolved", uid=identity_id, role=role)
        return role
