"""Custom application exceptions."""

from typing import Any

from app.schemas.auth import AuthErrorKind, ValidationFailure


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with message, status code and optional details."""
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error", details: dict[str, Any] | None = None):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422, details=details)


class CredentialValidationException(ValidationException):
    """Credential form input rejected before any network call."""

    def __init__(self, field: str, failure: ValidationFailure, message: str):
        """Initialize with the failing field and failure kind."""
        self.field = field
        self.failure = failure
        super().__init__(message, details={"field": field, "kind": failure.value})


class IdentityProviderException(AppException):
    """Identity provider rejected a sign-in, sign-up or reset request."""

    STATUS_CODES: dict[AuthErrorKind, int] = {
        AuthErrorKind.INVALID_CREDENTIALS: 401,
        AuthErrorKind.ACCOUNT_DISABLED: 403,
        AuthErrorKind.EMAIL_ALREADY_IN_USE: 409,
        AuthErrorKind.WEAK_PASSWORD: 400,
        AuthErrorKind.MALFORMED_EMAIL: 400,
        AuthErrorKind.NETWORK_ERROR: 503,
        AuthErrorKind.UNKNOWN: 502,
    }

    def __init__(self, kind: AuthErrorKind, message: str, provider_code: str | None = None):
        """Initialize with the translated error kind and its user-facing message."""
        self.kind = kind
        self.provider_code = provider_code
        super().__init__(
            message,
            status_code=self.STATUS_CODES[kind],
            details={"kind": kind.value},
        )
