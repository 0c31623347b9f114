"""Local validation of email/password form input."""

from dataclasses import dataclass

from app.core.exceptions import CredentialValidationException
from app.schemas.auth import ValidationFailure

MIN_PASSWORD_LENGTH = 6

VALIDATION_MESSAGES: dict[tuple[str, ValidationFailure], str] = {
    ("email", ValidationFailure.EMPTY_FIELD): "Please enter your email address.",
    ("email", ValidationFailure.MALFORMED_EMAIL): "Please enter a valid email address.",
    ("password", ValidationFailure.EMPTY_FIELD): "Please enter your password.",
    ("password", ValidationFailure.TOO_SHORT): (
        f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    ),
}


@dataclass(frozen=True)
class CredentialCheck:
    """Result of validating a credential pair."""

    email: str
    field: str | None = None
    failure: ValidationFailure | None = None

    @property
    def is_valid(self) -> bool:
        """True when no field failed."""
        return self.failure is None

    @property
    def message(self) -> str | None:
        """User-facing message for the failure, if any."""
        if self.failure is None or self.field is None:
            return None
        return VALIDATION_MESSAGES[(self.field, self.failure)]

    def raise_for_failure(self) -> None:
        """
        Raise if the check failed.

        Raises:
            CredentialValidationException: If a field failed validation
        """
        if self.failure is not None and self.field is not None:
            raise CredentialValidationException(self.field, self.failure, self.message or "")


def validate_email(email: str) -> ValidationFailure | None:
    """Check an email address. Only the presence of ``@`` is required."""
    email = email.strip()
    if not email:
        return ValidationFailure.EMPTY_FIELD
    if "@" not in email:
        return ValidationFailure.MALFORMED_EMAIL
    return None


def validate_password(password: str) -> ValidationFailure | None:
    """Check a password for presence and minimum length."""
    if not password:
        return ValidationFailure.EMPTY_FIELD
    if len(password) < MIN_PASSWORD_LENGTH:
        return ValidationFailure.TOO_SHORT
    return None


def validate_credentials(email: str, password: str) -> CredentialCheck:
    """
    Validate a credential pair before any network call.

    Email is checked first and the first failure wins.

    Args:
        email: Raw email input, trimmed before use
        password: Raw password input, used as-is

    Returns:
        Check carrying the trimmed email and the failure, if any
    """
    trimmed = email.strip()

    failure = validate_email(trimmed)
    if failure is not None:
        return CredentialCheck(email=trimmed, field="email", failure=failure)

    failure = validate_password(password)
    if failure is not None:
        return CredentialCheck(email=trimmed, field="password", failure=failure)

    return CredentialCheck(email=trimmed)


def require_valid_email(email: str) -> str:
    """
    Validate an email on its own and return it trimmed.

    Raises:
        CredentialValidationException: If the email is blank or malformed
    """
    trimmed = email.strip()
    failure = validate_email(trimmed)
    if failure is not None:
        raise CredentialValidationException(
            "email", failure, VALIDATION_MESSAGES[("email", failure)]
        )
    return trimmed
