"""Tests for the Firebase identity provider adapter."""

import json
from unittest.mock import patch

import httpx
import pytest
from jose import jwt

from app.core.identity_provider import FirebaseIdentityProvider, ProviderError
from app.schemas.auth import Identity

BASE_URL = "https://identitytoolkit.test/v1"


def make_provider(handler, **kwargs) -> FirebaseIdentityProvider:
    """Provider whose HTTP traffic is answered by a handler."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FirebaseIdentityProvider("test-api-key", base_url=BASE_URL, client=client, **kwargs)


def error_response(message: str, status_code: int = 400) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"error": {"code": status_code, "message": message, "errors": []}},
    )


@pytest.mark.asyncio
async def test_sign_in_request_and_identity() -> None:
    """Test the sign-in request shape and the identity built from the response."""
    requests = []
    id_token = jwt.encode({"email_verified": True, "sub": "uid-1"}, "secret", algorithm="HS256")

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "localId": "uid-1",
                "email": "nurse@cancare.test",
                "displayName": "",
                "idToken": id_token,
                "refreshToken": "refresh-1",
                "registered": True,
            },
        )

    provider = make_provider(handler)
    identity = await provider.sign_in("nurse@cancare.test", "secret-pass")

    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/accounts:signInWithPassword"
    assert request.url.params["key"] == "test-api-key"
    assert json.loads(request.content) == {
        "email": "nurse@cancare.test",
        "password": "secret-pass",
        "returnSecureToken": True,
    }

    assert identity.uid == "uid-1"
    assert identity.email == "nurse@cancare.test"
    assert identity.email_verified is True
    assert identity.display_name is None
    assert identity.id_token == id_token
    assert identity.refresh_token == "refresh-1"


@pytest.mark.asyncio
async def test_sign_up_uses_sign_up_endpoint() -> None:
    """Test account creation hits the sign-up endpoint."""
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json={"localId": "uid-2", "idToken": "not-a-jwt"})

    identity = await make_provider(handler).sign_up("new@cancare.test", "secret-pass")

    assert paths == ["/v1/accounts:signUp"]
    assert identity.uid == "uid-2"
    assert identity.email_verified is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("message", "code", "detail"),
    [
        ("INVALID_LOGIN_CREDENTIALS", "INVALID_LOGIN_CREDENTIALS", "INVALID_LOGIN_CREDENTIALS"),
        ("EMAIL_EXISTS", "EMAIL_EXISTS", "EMAIL_EXISTS"),
        (
            "WEAK_PASSWORD : Password should be at least 6 characters",
            "WEAK_PASSWORD",
            "Password should be at least 6 characters",
        ),
    ],
)
async def test_error_codes_are_parsed(message: str, code: str, detail: str) -> None:
    """Test provider error messages are split into code and detail."""
    provider = make_provider(lambda request: error_response(message))

    with pytest.raises(ProviderError) as exc_info:
        await provider.sign_in("nurse@cancare.test", "secret-pass")

    assert exc_info.value.code == code
    assert exc_info.value.message == detail


@pytest.mark.asyncio
async def test_error_without_body_uses_status() -> None:
    """Test an unparseable error body yields an HTTP status code."""
    provider = make_provider(lambda request: httpx.Response(503, text="unavailable"))

    with pytest.raises(ProviderError) as exc_info:
        await provider.sign_in("nurse@cancare.test", "secret-pass")

    assert exc_info.value.code == "http-503"


@pytest.mark.asyncio
async def test_connection_failure_is_network_error() -> None:
    """Test transport failures become network error codes."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderError) as exc_info:
        await make_provider(handler).sign_in("nurse@cancare.test", "secret-pass")

    assert exc_info.value.code == "network-request-failed"


@pytest.mark.asyncio
async def test_timeout_is_network_error() -> None:
    """Test transport timeouts become network error codes."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ProviderError) as exc_info:
        await make_provider(handler).sign_in("nurse@cancare.test", "secret-pass")

    assert exc_info.value.code == "network-request-timeout"


@pytest.mark.asyncio
async def test_missing_user_id() -> None:
    """Test a success response without a user id is rejected."""
    provider = make_provider(lambda request: httpx.Response(200, json={"email": "x@y"}))

    with pytest.raises(ProviderError) as exc_info:
        await provider.sign_in("x@y", "secret-pass")

    assert exc_info.value.code == "missing-local-id"


@pytest.mark.asyncio
async def test_send_password_reset_payload() -> None:
    """Test the password reset request body."""
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"email": "nurse@cancare.test"})

    await make_provider(handler).send_password_reset("nurse@cancare.test")

    assert bodies == [
        (
            "/v1/accounts:sendOobCode",
            {"requestType": "PASSWORD_RESET", "email": "nurse@cancare.test"},
        )
    ]


@pytest.mark.asyncio
async def test_sign_out_revokes_refresh_tokens() -> None:
    """Test sign-out revokes the user's refresh tokens."""
    provider = make_provider(lambda request: httpx.Response(500))

    with patch("app.core.identity_provider.auth.revoke_refresh_tokens") as revoke:
        await provider.sign_out(Identity(uid="uid-1"))

    revoke.assert_called_once_with("uid-1")


@pytest.mark.asyncio
async def test_sign_out_revoke_failure() -> None:
    """Test revocation failures are reported as provider errors."""
    provider = make_provider(lambda request: httpx.Response(500))

    with patch(
        "app.core.identity_provider.auth.revoke_refresh_tokens",
        side_effect=ValueError("no app"),
    ):
        with pytest.raises(ProviderError) as exc_info:
            await provider.sign_out(Identity(uid="uid-1"))

    assert exc_info.value.code == "revoke-failed"


@pytest.mark.asyncio
async def test_sign_out_without_revocation() -> None:
    """Test revocation can be disabled."""
    provider = make_provider(lambda request: httpx.Response(500), revoke_on_sign_out=False)

    with patch("app.core.identity_provider.auth.revoke_refresh_tokens") as revoke:
        await provider.sign_out(Identity(uid="uid-1"))

    revoke.assert_not_called()
