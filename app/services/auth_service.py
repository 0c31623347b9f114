"""Stateless role resolution from Firebase ID tokens."""

import structlog

from app.core.exceptions import UnauthorizedException
from app.core.firebase import verify_firebase_token
from app.schemas.routing import RouteDecision, RouterState
from app.services.profile_service import ProfileService
from app.services.role_router import normalize_role, select_destination

logger = structlog.get_logger(__name__)


class AuthService:
    """Resolves a destination for a client that already holds a Firebase ID token."""

    def __init__(self, profile_service: ProfileService):
        """Initialize auth service with the profile lookup service."""
        self.profile_service = profile_service

    async def verify_firebase_id_token(self, id_token: str) -> dict:
        """
        Verify Firebase ID token and extract user information.

        Args:
            id_token: Firebase ID token from the mobile app

        Returns:
            Decoded token with user claims

        Raises:
            UnauthorizedException: If token verification fails
        """
        try:
            return await verify_firebase_token(id_token)
        except ValueError as e:
            raise UnauthorizedException(str(e))

    async def resolve_route(self, id_token: str) -> RouteDecision:
        """
        Verify a token and pick the destination for its identity.

        Raises:
            UnauthorizedException: If the token is invalid or has no uid
        """
        claims = await self.verify_firebase_id_token(id_token)
        uid = claims.get("uid")
        if not uid:
            raise UnauthorizedException("Token has no user id")

        role = normalize_role(await self.profile_service.get_role(uid))
        decision = RouteDecision(
            state=RouterState.AUTHENTICATED_ROUTED,
            destination=select_destination(role),
            uid=uid,
            role=role,
        )
        logger.info("token_route_resolved", uid=uid, destination=decision.destination.value)
        return decision
