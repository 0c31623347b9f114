"""Client sessions binding an identity service to a role router."""

import secrets
import time
from collections.abc import Callable

import structlog

from app.core.document_store import DocumentStore
from app.core.exceptions import UnauthorizedException
from app.core.identity_provider import IdentityProvider
from app.schemas.auth import Identity
from app.schemas.routing import RouteDecision
from app.schemas.users import UserProfile
from app.services.credential_validator import validate_credentials
from app.services.identity_service import IdentityService
from app.services.profile_service import ProfileService
from app.services.role_router import RoleRouter

logger = structlog.get_logger(__name__)


class AuthSession:
    """One client's authentication state and routing."""

    def __init__(self, session_id: str, identity_service: IdentityService, router: RoleRouter):
        """Initialize a session around its services."""
        self.session_id = session_id
        self.identity_service = identity_service
        self.router = router
        self.last_used = 0.0

    @property
    def identity(self) -> Identity | None:
        """Signed-in identity, if any."""
        return self.identity_service.current_identity()

    @property
    def route(self) -> RouteDecision:
        """Latest routing decision."""
        return self.router.current

    async def start(self) -> RouteDecision:
        """Start routing identity changes."""
        return await self.router.start()

    async def sign_in(self, email: str, password: str) -> tuple[Identity, RouteDecision]:
        """
        Validate credentials, sign in and wait for the destination.

        Raises:
            CredentialValidationException: If the form input is invalid
            IdentityProviderException: If the provider rejects the credentials
        """
        check = validate_credentials(email, password)
        check.raise_for_failure()

        baseline = self.router.generation
        identity = await self.identity_service.sign_in(check.email, password)
        return identity, await self.router.wait_for_route(baseline)

    async def sign_up(self, email: str, password: str) -> tuple[Identity, RouteDecision]:
        """
        Validate credentials, create an account and wait for the destination.

        Raises:
            CredentialValidationException: If the form input is invalid
            IdentityProviderException: If the provider refuses the account
        """
        check = validate_credentials(email, password)
        check.raise_for_failure()

        baseline = self.router.generation
        identity = await self.identity_service.sign_up(check.email, password)
        return identity, await self.router.wait_for_route(baseline)

    async def sign_out(self) -> RouteDecision:
        """Sign out and wait for the sign-in destination."""
        if self.identity is None:
            return self.router.current

        baseline = self.router.generation
        await self.identity_service.sign_out()
        return await self.router.wait_for_route(baseline)

    async def profile(self) -> UserProfile | None:
        """Profile document of the signed-in identity, if readable."""
        identity = self.identity
        if identity is None:
            return None
        return await self.router.profile_service.get_profile(identity.uid)

    async def close(self) -> None:
        """Stop routing and end identity subscriptions."""
        await self.router.stop()
        self.identity_service.close()


class SessionManager:
    """Creates, finds and closes client sessions held in process memory."""

    DEFAULT_IDLE_TIMEOUT_SECONDS = 1800.0

    def __init__(
        self,
        provider: IdentityProvider,
        store: DocumentStore,
        profile_collection: str = ProfileService.DEFAULT_COLLECTION,
        profile_timeout: float = ProfileService.DEFAULT_TIMEOUT_SECONDS,
        idle_timeout: float | None = DEFAULT_IDLE_TIMEOUT_SECONDS,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the manager.

        Args:
            provider: Identity provider shared by all sessions
            store: Document store holding profile documents
            profile_collection: Collection of profile documents
            profile_timeout: Profile lookup timeout, in seconds
            idle_timeout: Seconds a session may go unused before it is closed;
                None keeps sessions until they are closed explicitly
            id_factory: Session id generator
            clock: Monotonic time source
        """
        self.provider = provider
        self.profile_service = ProfileService(store, profile_collection, profile_timeout)
        self.idle_timeout = idle_timeout
        self.id_factory = id_factory or (lambda: secrets.token_urlsafe(32))
        self.clock = clock
        self._sessions: dict[str, AuthSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def create(self) -> AuthSession:
        """Create and start a session."""
        await self.close_expired()

        session_id = self.id_factory()
        identity_service = IdentityService(self.provider)
        router = RoleRouter(identity_service, self.profile_service)
        session = AuthSession(session_id, identity_service, router)
        await session.start()
        session.last_used = self.clock()
        self._sessions[session_id] = session
        logger.info("auth_session_created", session_count=len(self._sessions))
        return session

    async def open(
        self, email: str, password: str, create_account: bool = False
    ) -> tuple[AuthSession, Identity, RouteDecision]:
        """
        Validate credentials, then create a session and sign it in (or up).

        The session is discarded if authentication fails.

        Raises:
            CredentialValidationException: If the form input is invalid
            IdentityProviderException: If the provider rejects the request
        """
        validate_credentials(email, password).raise_for_failure()

        session = await self.create()
        try:
            if create_account:
                identity, route = await session.sign_up(email, password)
            else:
                identity, route = await session.sign_in(email, password)
        except BaseException:
            await self.close(session.session_id)
            raise

        return session, identity, route

    async def get(self, session_id: str | None) -> AuthSession:
        """
        Look up a session and mark it as used.

        Expired sessions are closed first, so an idle session id is unknown here.

        Raises:
            UnauthorizedException: If the session does not exist or has expired
        """
        await self.close_expired()

        session = self._sessions.get(session_id) if session_id else None
        if session is None:
            raise UnauthorizedException("Unknown or expired session")
        session.last_used = self.clock()
        return session

    async def close_expired(self) -> int:
        """
        Close sessions that have been idle longer than the idle timeout.

        Returns:
            Number of sessions closed
        """
        if self.idle_timeout is None:
            return 0

        cutoff = self.clock() - self.idle_timeout
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.last_used < cutoff
        ]
        for session_id in expired:
            logger.info("auth_session_expired", idle_timeout_seconds=self.idle_timeout)
            await self.close(session_id)
        return len(expired)

    async def close(self, session_id: str) -> None:
        """Sign out and discard a session. Unknown ids are ignored."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        await session.identity_service.sign_out()
        await session.close()
        logger.info("auth_session_closed", session_count=len(self._sessions))

    async def close_all(self) -> None:
        """Close every session."""
        for session_id in list(self._sessions):
            await self.close(session_id)
