"""FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings
from app.core.document_store import FirestoreDocumentStore
from app.core.identity_provider import FirebaseIdentityProvider
from app.services.auth_service import AuthService
from app.services.session_service import AuthSession, SessionManager

# Security
security = HTTPBearer()


@lru_cache
def get_session_manager() -> SessionManager:
    """Get the process-wide session manager."""
    provider = FirebaseIdentityProvider(
        api_key=settings.firebase_api_key,
        base_url=settings.firebase_auth_url,
        timeout=settings.auth_request_timeout_seconds,
    )
    return SessionManager(
        provider=provider,
        store=FirestoreDocumentStore(),
        profile_collection=settings.profile_collection,
        profile_timeout=settings.profile_lookup_timeout_seconds,
        idle_timeout=settings.session_idle_timeout_seconds,
    )


def get_auth_service(
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> AuthService:
    """Get the token-based auth service."""
    return AuthService(manager.profile_service)


async def get_current_session(
    manager: Annotated[SessionManager, Depends(get_session_manager)],
    x_session_id: Annotated[str | None, Header()] = None,
) -> AuthSession:
    """
    Resolve the session named by the ``X-Session-ID`` header.

    Raises:
        UnauthorizedException: If the header is missing or the session is unknown
    """
    return await manager.get(x_session_id)


async def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> str:
    """Extract the bearer token."""
    return credentials.credentials


# Type aliases for dependency injection
SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
CurrentSession = Annotated[AuthSession, Depends(get_current_session)]
BearerToken = Annotated[str, Depends(get_bearer_token)]
