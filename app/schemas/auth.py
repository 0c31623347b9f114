"""Authentication schemas."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.routing import RouteDecision
from app.schemas.users import UserProfileResponse

# ============================================================================
# Error Kinds
# ============================================================================


class ValidationFailure(str, Enum):
    """Local credential validation failures."""

    EMPTY_FIELD = "empty_field"
    MALFORMED_EMAIL = "malformed_email"
    TOO_SHORT = "too_short"


class AuthErrorKind(str, Enum):
    """Identity provider failures, translated from provider error codes."""

    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_DISABLED = "account_disabled"
    EMAIL_ALREADY_IN_USE = "email_already_in_use"
    WEAK_PASSWORD = "weak_password"
    MALFORMED_EMAIL = "malformed_email"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


# ============================================================================
# Identity
# ============================================================================


class Identity(BaseModel):
    """Authenticated principal as issued by the identity provider."""

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None
    id_token: str | None = Field(default=None, repr=False, exclude=True)
    refresh_token: str | None = Field(default=None, repr=False, exclude=True)


class IdentityResponse(BaseModel):
    """Public view of an identity."""

    uid: str
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        """Build the public view, dropping provider tokens."""
        return cls(
            uid=identity.uid,
            email=identity.email,
            email_verified=identity.email_verified,
            display_name=identity.display_name,
        )


# ============================================================================
# Requests
# ============================================================================


class CredentialsRequest(BaseModel):
    """Email/password form submission.

    Fields are plain strings; the credential validator decides what is valid.
    """

    email: str = ""
    password: str = Field(default="", repr=False)


class PasswordResetRequest(BaseModel):
    """Password reset request schema."""

    email: str = ""


# ============================================================================
# Responses
# ============================================================================


class RouteResponse(BaseModel):
    """Routing decision exposed to the client."""

    state: str
    destination: str | None = None
    uid: str | None = None
    role: str | None = None

    @classmethod
    def from_decision(cls, decision: RouteDecision) -> "RouteResponse":
        """Build from a router decision."""
        return cls(
            state=decision.state.value,
            destination=decision.destination.value if decision.destination else None,
            uid=decision.uid,
            role=decision.role,
        )


class SessionResponse(BaseModel):
    """Session state after a sign-in, sign-up or sign-out."""

    session_id: str
    identity: IdentityResponse | None = None
    route: RouteResponse


class SessionDetailResponse(SessionResponse):
    """Session snapshot including the profile document, if any."""

    profile: UserProfileResponse | None = None
