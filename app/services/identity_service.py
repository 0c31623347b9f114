"""Identity service: the single point of contact with the identity provider."""

import structlog

from app.core.channel import StateChannel, Subscription
from app.core.exceptions import IdentityProviderException
from app.core.identity_provider import IdentityProvider, ProviderError
from app.schemas.auth import AuthErrorKind, Identity

logger = structlog.get_logger(__name__)

# REST API codes and client SDK codes both appear in the wild.
PROVIDER_ERROR_CODES: dict[str, AuthErrorKind] = {
    "EMAIL_NOT_FOUND": AuthErrorKind.INVALID_CREDENTIALS,
    "INVALID_PASSWORD": AuthErrorKind.INVALID_CREDENTIALS,
    "INVALID_LOGIN_CREDENTIALS": AuthErrorKind.INVALID_CREDENTIALS,
    "user-not-found": AuthErrorKind.INVALID_CREDENTIALS,
    "wrong-password": AuthErrorKind.INVALID_CREDENTIALS,
    "invalid-credential": AuthErrorKind.INVALID_CREDENTIALS,
    "USER_DISABLED": AuthErrorKind.ACCOUNT_DISABLED,
    "user-disabled": AuthErrorKind.ACCOUNT_DISABLED,
    "EMAIL_EXISTS": AuthErrorKind.EMAIL_ALREADY_IN_USE,
    "email-already-in-use": AuthErrorKind.EMAIL_ALREADY_IN_USE,
    "WEAK_PASSWORD": AuthErrorKind.WEAK_PASSWORD,
    "weak-password": AuthErrorKind.WEAK_PASSWORD,
    "INVALID_EMAIL": AuthErrorKind.MALFORMED_EMAIL,
    "invalid-email": AuthErrorKind.MALFORMED_EMAIL,
}

NETWORK_ERROR_MARKERS = ("network", "timeout", "unreachable", "interrupted")

AUTH_ERROR_MESSAGES: dict[AuthErrorKind, str] = {
    AuthErrorKind.INVALID_CREDENTIALS: "The email or password is incorrect.",
    AuthErrorKind.ACCOUNT_DISABLED: "This account has been disabled.",
    AuthErrorKind.EMAIL_ALREADY_IN_USE: "This email address is already in use.",
    AuthErrorKind.WEAK_PASSWORD: "The password is too weak.",
    AuthErrorKind.MALFORMED_EMAIL: "The email address is invalid.",
    AuthErrorKind.NETWORK_ERROR: "Could not reach the server. Check your connection and try again.",
    AuthErrorKind.UNKNOWN: "Authentication failed. Please try again.",
}

SIGN_IN_ERROR_KINDS = frozenset(
    {
        AuthErrorKind.INVALID_CREDENTIALS,
        AuthErrorKind.ACCOUNT_DISABLED,
        AuthErrorKind.MALFORMED_EMAIL,
        AuthErrorKind.NETWORK_ERROR,
    }
)

SIGN_UP_ERROR_KINDS = frozenset(
    {
        AuthErrorKind.EMAIL_ALREADY_IN_USE,
        AuthErrorKind.WEAK_PASSWORD,
        AuthErrorKind.MALFORMED_EMAIL,
        AuthErrorKind.NETWORK_ERROR,
    }
)

PASSWORD_RESET_ERROR_KINDS = frozenset(
    {
        AuthErrorKind.INVALID_CREDENTIALS,
        AuthErrorKind.MALFORMED_EMAIL,
        AuthErrorKind.NETWORK_ERROR,
    }
)


def classify_provider_error(code: str, allowed: frozenset[AuthErrorKind]) -> AuthErrorKind:
    """
    Translate a provider error code into an error kind.

    Args:
        code: Raw provider error code
        allowed: Kinds the calling operation can report

    Returns:
        The mapped kind, or UNKNOWN if the code is unmapped or not allowed
    """
    kind = PROVIDER_ERROR_CODES.get(code)
    if kind is None and any(marker in code.lower() for marker in NETWORK_ERROR_MARKERS):
        kind = AuthErrorKind.NETWORK_ERROR
    if kind is None or kind not in allowed:
        return AuthErrorKind.UNKNOWN
    return kind


class IdentityService:
    """Wraps sign-in, sign-up, sign-out and identity-change notifications."""

    def __init__(self, provider: IdentityProvider):
        """Initialize service with an identity provider."""
        self.provider = provider
        self._changes: StateChannel[Identity | None] = StateChannel(None)

    def current_identity(self) -> Identity | None:
        """Snapshot of the signed-in identity."""
        return self._changes.value

    def identity_changes(self) -> Subscription[Identity | None]:
        """Subscribe to identity changes, starting with the current identity."""
        return self._changes.subscribe()

    def _failure(
        self, operation: str, error: Exception, allowed: frozenset[AuthErrorKind]
    ) -> IdentityProviderException:
        code = error.code if isinstance(error, ProviderError) else type(error).__name__
        kind = classify_provider_error(code, allowed)
        logger.warning(
            "identity_provider_error",
            operation=operation,
            provider_code=code,
            kind=kind.value,
        )
        return IdentityProviderException(kind, AUTH_ERROR_MESSAGES[kind], provider_code=code)

    async def sign_in(self, email: str, password: str) -> Identity:
        """
        Sign in with email and password.

        Args:
            email: Email address (trimmed)
            password: Password

        Returns:
            The signed-in identity

        Raises:
            IdentityProviderException: If the provider rejects the credentials
        """
        try:
            identity = await self.provider.sign_in(email.strip(), password)
        except ProviderError as e:
            raise self._failure("sign_in", e, SIGN_IN_ERROR_KINDS) from e
        except Exception as e:
            logger.error("identity_sign_in_failed", error=str(e))
            raise self._failure("sign_in", e, SIGN_IN_ERROR_KINDS) from e

        logger.info("identity_signed_in", uid=identity.uid)
        self._changes.publish(identity)
        return identity

    async def sign_up(self, email: str, password: str) -> Identity:
        """
        Create an account and sign it in.

        The profile document is not created here.

        Raises:
            IdentityProviderException: If the provider refuses the account
        """
        try:
            identity = await self.provider.sign_up(email.strip(), password)
        except ProviderError as e:
            raise self._failure("sign_up", e, SIGN_UP_ERROR_KINDS) from e
        except Exception as e:
            logger.error("identity_sign_up_failed", error=str(e))
            raise self._failure("sign_up", e, SIGN_UP_ERROR_KINDS) from e

        logger.info("identity_signed_up", uid=identity.uid)
        self._changes.publish(identity)
        return identity

    async def sign_out(self) -> None:
        """Sign out. Never raises; provider-side failures are logged."""
        identity = self.current_identity()
        if identity is None:
            return

        self._changes.publish(None)
        logger.info("identity_signed_out", uid=identity.uid)

        try:
            await self.provider.sign_out(identity)
        except Exception as e:
            logger.warning("identity_sign_out_provider_failed", uid=identity.uid, error=str(e))

    async def send_password_reset(self, email: str) -> None:
        """
        Ask the provider to send a password reset email.

        Raises:
            IdentityProviderException: If the provider rejects the request
        """
        try:
            await self.provider.send_password_reset(email.strip())
        except ProviderError as e:
            raise self._failure("password_reset", e, PASSWORD_RESET_ERROR_KINDS) from e
        except Exception as e:
            logger.error("identity_password_reset_failed", error=str(e))
            raise self._failure("password_reset", e, PASSWORD_RESET_ERROR_KINDS) from e

        logger.info("identity_password_reset_sent")

    def close(self) -> None:
        """End all identity-change subscriptions."""
        self._changes.close()
