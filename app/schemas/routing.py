"""Role routing schemas."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Role tags carried by profile documents."""

    DOCTOR = "doctor"
    PATIENT = "patient"
    NURSE = "nurse"
    RESPONSIBLE = "responsible"


class Destination(str, Enum):
    """Screens the client can be sent to."""

    SIGN_IN = "sign_in"
    DOCTOR_DASHBOARD = "doctor_dashboard"
    PATIENT_DASHBOARD = "patient_dashboard"
    NURSE_DASHBOARD = "nurse_dashboard"
    RESPONSIBLE_DASHBOARD = "responsible_dashboard"


class RouterState(str, Enum):
    """Role router states."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_RESOLVING = "authenticated_resolving"
    AUTHENTICATED_ROUTED = "authenticated_routed"


class RouteDecision(BaseModel):
    """Outcome of one identity-change event."""

    model_config = ConfigDict(frozen=True)

    state: RouterState
    destination: Destination | None = None
    uid: str | None = None
    role: str | None = None
    generation: int = 0

    @property
    def is_settled(self) -> bool:
        """True once a destination has been selected."""
        return self.state != RouterState.AUTHENTICATED_RESOLVING
