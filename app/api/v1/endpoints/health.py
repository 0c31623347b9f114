"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.core.firebase import get_firebase_app
from app.dependencies import SessionManagerDep

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check response model."""

    status: str
    version: str
    environment: str
    firebase: str
    active_sessions: int


def check_firebase_initialized() -> bool:
    """Check whether the Firebase Admin SDK has been initialized."""
    try:
        get_firebase_app()
        return True
    except RuntimeError:
        return False


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns:
        Basic health status
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check(manager: SessionManagerDep) -> DetailedHealthResponse:
    """
    Detailed health check with Firebase status and session count.

    Returns:
        Detailed health status including dependencies
    """
    firebase_ready = check_firebase_initialized()

    return DetailedHealthResponse(
        status="healthy" if firebase_ready else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        firebase="healthy" if firebase_ready else "unhealthy",
        active_sessions=len(manager),
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """
    Simple ping endpoint.

    Returns:
        Pong response
    """
    return {"message": "pong"}
