import asyncio
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.identity_provider import ProviderError
from app.dependencies import get_session_manager
from app.main import app
from app.schemas.auth import Identity
from app.services.identity_service import IdentityService
from app.services.profile_service import ProfileService
from app.services.role_router import RoleRouter
from app.services.session_service import SessionManager

PASSWORD = "secret-pass"


class FakeIdentityProvider:
    """In-memory identity provider speaking Firebase REST error codes."""

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.signed_out: list[str] = []
        self.reset_emails: list[str] = []
        self.error: Exception | None = None
        self.fail_sign_out = False
        self._next_uid = 0

    def add_account(
        self, email: str, password: str = PASSWORD, uid: str | None = None, disabled: bool = False
    ) -> str:
        self._next_uid += 1
        uid = uid or f"uid-{self._next_uid}"
        self.accounts[email] = {"uid": uid, "password": password, "disabled": disabled}
        return uid

    def _identity(self, email: str) -> Identity:
        return Identity(
            uid=self.accounts[email]["uid"],
            email=email,
            id_token=f"token-{email}",
            refresh_token=f"refresh-{email}",
        )

    async def sign_in(self, email: str, password: str) -> Identity:
        self.calls.append(("sign_in", email))
        if self.error is not None:
            raise self.error
        account = self.accounts.get(email)
        if account is None:
            raise ProviderError("EMAIL_NOT_FOUND")
        if account["disabled"]:
            raise ProviderError("USER_DISABLED")
        if account["password"] != password:
            raise ProviderError("INVALID_PASSWORD")
        return self._identity(email)

    async def sign_up(self, email: str, password: str) -> Identity:
        self.calls.append(("sign_up", email))
        if self.error is not None:
            raise self.error
        if email in self.accounts:
            raise ProviderError("EMAIL_EXISTS")
        if len(password) < 6:
            raise ProviderError("WEAK_PASSWORD", "Password should be at least 6 characters")
        self.add_account(email, password)
        return self._identity(email)

    async def sign_out(self, identity: Identity) -> None:
        self.calls.append(("sign_out", identity.uid))
        if self.fail_sign_out:
            raise ProviderError("revoke-failed")
        self.signed_out.append(identity.uid)

    async def send_password_reset(self, email: str) -> None:
        self.calls.append(("password_reset", email))
        if self.error is not None:
            raise self.error
        if email not in self.accounts:
            raise ProviderError("EMAIL_NOT_FOUND")
        self.reset_emails.append(email)


class FakeDocumentStore:
    """In-memory document store with per-document delays, gates and errors."""

    def __init__(self) -> None:
        self.documents: dict[tuple[str, str], dict[str, Any]] = {}
        self.delays: dict[str, float] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.errors: dict[str, Exception] = {}
        self.reads: list[tuple[str, str]] = []

    def put(self, document_id: str, data: dict[str, Any], collection: str = "users") -> None:
        self.documents[(collection, document_id)] = data

    async def get_document(self, collection: str, document_id: str) -> dict[str, Any] | None:
        self.reads.append((collection, document_id))
        if document_id in self.gates:
            await self.gates[document_id].wait()
        if document_id in self.delays:
            await asyncio.sleep(self.delays[document_id])
        if document_id in self.errors:
            raise self.errors[document_id]
        data = self.documents.get((collection, document_id))
        return dict(data) if data is not None else None


@pytest.fixture
def provider() -> FakeIdentityProvider:
    """Fake identity provider."""
    return FakeIdentityProvider()


@pytest.fixture
def store() -> FakeDocumentStore:
    """Fake document store."""
    return FakeDocumentStore()


@pytest.fixture
def profile_service(store: FakeDocumentStore) -> ProfileService:
    """Profile service with a short timeout for tests."""
    return ProfileService(store, timeout=0.5)


@pytest.fixture
def identity_service(provider: FakeIdentityProvider) -> IdentityService:
    """Identity service over the fake provider."""
    return IdentityService(provider)


@pytest_asyncio.fixture
async def role_router(
    identity_service: IdentityService, profile_service: ProfileService
) -> AsyncGenerator[RoleRouter, None]:
    """Role router, stopped after the test."""
    router = RoleRouter(identity_service, profile_service)
    yield router
    await router.stop()


@pytest_asyncio.fixture
async def session_manager(
    provider: FakeIdentityProvider, store: FakeDocumentStore
) -> AsyncGenerator[SessionManager, None]:
    """Session manager over the fakes."""
    manager = SessionManager(provider, store, profile_timeout=0.5)
    yield manager
    await manager.close_all()


@pytest_asyncio.fixture
async def client(session_manager: SessionManager) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""
    app.dependency_overrides[get_session_manager] = lambda: session_manager

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def nurse_account(provider: FakeIdentityProvider, store: FakeDocumentStore) -> dict:
    """An account whose profile document carries the nurse role."""
    uid = provider.add_account("nurse@cancare.test")
    store.put(
        uid,
        {"email": "nurse@cancare.test", "activeRole": "Nurse", "profile": {"name": "Salma"}},
    )
    return {"uid": uid, "email": "nurse@cancare.test", "password": PASSWORD}
