"""Authentication endpoints."""

from fastapi import APIRouter, status

from app.dependencies import AuthServiceDep, BearerToken, CurrentSession, SessionManagerDep
from app.schemas.auth import (
    CredentialsRequest,
    IdentityResponse,
    PasswordResetRequest,
    RouteResponse,
    SessionDetailResponse,
    SessionResponse,
)
from app.schemas.users import UserProfileResponse
from app.services.credential_validator import require_valid_email
from app.services.identity_service import IdentityService

router = APIRouter()


@router.post(
    "/sign-in",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Sign in with email and password",
)
async def sign_in(request: CredentialsRequest, manager: SessionManagerDep) -> SessionResponse:
    """
    Sign in and resolve the dashboard for the user's role.

    Credentials are validated locally before the identity provider is called.
    The returned session id must be sent as ``X-Session-ID`` on later calls.

    Args:
        request: Email and password
        manager: Session manager

    Returns:
        Session id, identity and routing decision

    Raises:
        CredentialValidationException: If the form input is invalid
        IdentityProviderException: If the provider rejects the credentials
    """
    session, identity, route = await manager.open(request.email, request.password)
    return SessionResponse(
        session_id=session.session_id,
        identity=IdentityResponse.from_identity(identity),
        route=RouteResponse.from_decision(route),
    )


@router.post(
    "/sign-up",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Authentication"],
    summary="Create an account with email and password",
)
async def sign_up(request: CredentialsRequest, manager: SessionManagerDep) -> SessionResponse:
    """
    Create an account, sign it in and resolve its dashboard.

    No profile document is created, so a new account lands on the default
    dashboard until one is provisioned.

    Args:
        request: Email and password
        manager: Session manager

    Returns:
        Session id, identity and routing decision
    """
    session, identity, route = await manager.open(
        request.email, request.password, create_account=True
    )
    return SessionResponse(
        session_id=session.session_id,
        identity=IdentityResponse.from_identity(identity),
        route=RouteResponse.from_decision(route),
    )


@router.post(
    "/sign-out",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Sign out and close the session",
)
async def sign_out(session: CurrentSession, manager: SessionManagerDep) -> SessionResponse:
    """
    Sign out. Always succeeds for a known session.

    Args:
        session: Session named by ``X-Session-ID``
        manager: Session manager

    Returns:
        The sign-in routing decision
    """
    route = await session.sign_out()
    await manager.close(session.session_id)
    return SessionResponse(
        session_id=session.session_id,
        identity=None,
        route=RouteResponse.from_decision(route),
    )


@router.get(
    "/session",
    response_model=SessionDetailResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Current session state",
)
async def get_session(session: CurrentSession) -> SessionDetailResponse:
    """
    Return the session's identity, latest route and profile document.

    Args:
        session: Session named by ``X-Session-ID``

    Returns:
        Session snapshot
    """
    identity = session.identity
    profile = await session.profile()
    return SessionDetailResponse(
        session_id=session.session_id,
        identity=IdentityResponse.from_identity(identity) if identity else None,
        route=RouteResponse.from_decision(session.route),
        profile=UserProfileResponse.from_profile(profile) if profile else None,
    )


@router.post(
    "/password-reset",
    status_code=status.HTTP_202_ACCEPTED,
    tags=["Authentication"],
    summary="Send a password reset email",
)
async def password_reset(
    request: PasswordResetRequest, manager: SessionManagerDep
) -> dict[str, str]:
    """
    Ask the identity provider to email a password reset link.

    Args:
        request: Email address
        manager: Session manager

    Returns:
        Confirmation message
    """
    email = require_valid_email(request.email)
    await IdentityService(manager.provider).send_password_reset(email)
    return {"message": "Password reset email sent."}


@router.get(
    "/route",
    response_model=RouteResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Resolve the dashboard for a Firebase ID token",
)
async def resolve_route(token: BearerToken, auth_service: AuthServiceDep) -> RouteResponse:
    """
    Resolve the destination for a client already signed in to Firebase.

    Args:
        token: Firebase ID token from the ``Authorization`` header
        auth_service: Token-based auth service

    Returns:
        Routing decision
    """
    decision = await auth_service.resolve_route(token)
    return RouteResponse.from_decision(decision)
