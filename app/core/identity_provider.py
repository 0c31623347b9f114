"""Identity provider boundary backed by Firebase Authentication."""

import asyncio
from typing import Any, Protocol

import httpx
from firebase_admin import auth
from jose import JWTError, jwt
from structlog import get_logger

from app.schemas.auth import Identity

logger = get_logger(__name__)


class ProviderError(Exception):
    """Error reported by the identity provider, carrying its raw error code."""

    def __init__(self, code: str, message: str | None = None):
        """Initialize with provider error code and optional message."""
        self.code = code
        self.message = message or code
        super().__init__(f"{code}: {self.message}")


class IdentityProvider(Protocol):
    """Operations the identity service needs from a hosted identity provider."""

    async def sign_in(self, email: str, password: str) -> Identity:
        """Authenticate with email and password."""
        ...

    async def sign_up(self, email: str, password: str) -> Identity:
        """Create an account with email and password."""
        ...

    async def sign_out(self, identity: Identity) -> None:
        """End the identity's provider-side session."""
        ...

    async def send_password_reset(self, email: str) -> None:
        """Send a password reset email."""
        ...


class FirebaseIdentityProvider:
    """Firebase Authentication through its REST API and the Admin SDK."""

    SIGN_IN_PATH = "accounts:signInWithPassword"
    SIGN_UP_PATH = "accounts:signUp"
    SEND_OOB_CODE_PATH = "accounts:sendOobCode"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://identitytoolkit.googleapis.com/v1",
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
        revoke_on_sign_out: bool = True,
    ):
        """
        Initialize the provider.

        Args:
            api_key: Firebase web API key
            base_url: Identity Toolkit base URL
            timeout: Transport timeout for each request, in seconds
            client: Optional shared HTTP client; one is created per request otherwise
            revoke_on_sign_out: Revoke refresh tokens with the Admin SDK on sign-out
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = client
        self.revoke_on_sign_out = revoke_on_sign_out

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        POST to an Identity Toolkit endpoint.

        Raises:
            ProviderError: If the request fails or the provider rejects it
        """
        url = f"{self.base_url}/{path}"
        params = {"key": self.api_key}

        try:
            if self.client is not None:
                response = await self.client.post(url, params=params, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, params=params, json=payload)
        except httpx.TimeoutException as e:
            raise ProviderError("network-request-timeout", str(e)) from e
        except httpx.TransportError as e:
            raise ProviderError("network-request-failed", str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != 200:
            raise self._error_from_body(body, response.status_code)

        return body

    @staticmethod
    def _error_from_body(body: Any, status_code: int) -> ProviderError:
        # Messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
        error = body.get("error") if isinstance(body, dict) else None
        raw = error.get("message") if isinstance(error, dict) else None
        if not raw:
            return ProviderError(f"http-{status_code}")
        code, _, detail = str(raw).partition(":")
        return ProviderError(code.strip(), detail.strip() or None)

    @staticmethod
    def _email_verified(id_token: str | None) -> bool:
        if not id_token:
            return False
        try:
            claims = jwt.get_unverified_claims(id_token)
        except JWTError:
            return False
        return bool(claims.get("email_verified", False))

    def _identity_from_body(self, body: dict[str, Any]) -> Identity:
        if not body.get("localId"):
            raise ProviderError("missing-local-id", "Provider response had no user id")
        id_token = body.get("idToken")
        return Identity(
            uid=body["localId"],
            email=body.get("email"),
            email_verified=self._email_verified(id_token),
            display_name=body.get("displayName") or None,
            id_token=id_token,
            refresh_token=body.get("refreshToken"),
        )

    async def sign_in(self, email: str, password: str) -> Identity:
        """Sign in with email and password."""
        body = await self._post(
            self.SIGN_IN_PATH,
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._identity_from_body(body)

    async def sign_up(self, email: str, password: str) -> Identity:
        """Create a new email/password account."""
        body = await self._post(
            self.SIGN_UP_PATH,
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._identity_from_body(body)

    async def sign_out(self, identity: Identity) -> None:
        """Revoke the identity's refresh tokens."""
        if not self.revoke_on_sign_out:
            return
        try:
            await asyncio.to_thread(auth.revoke_refresh_tokens, identity.uid)
        except Exception as e:
            raise ProviderError("revoke-failed", str(e)) from e

    async def send_password_reset(self, email: str) -> None:
        """Send a password reset email."""
        await self._post(
            self.SEND_OOB_CODE_PATH,
            {"requestType": "PASSWORD_RESET", "email": email},
        )
