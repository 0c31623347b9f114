"""Document store boundary backed by Cloud Firestore."""

from typing import Any, Protocol

from app.core.firebase import get_firestore_client


class DocumentStore(Protocol):
    """Read access to a hosted document database."""

    async def get_document(self, collection: str, document_id: str) -> dict[str, Any] | None:
        """Return the document's data, or None if it does not exist."""
        ...


class FirestoreDocumentStore:
    """Firestore reads through the Firebase Admin SDK async client."""

    def __init__(self, client: Any | None = None):
        """Initialize with an optional client; the default one is created on first use."""
        self._client = client

    @property
    def client(self) -> Any:
        """Async Firestore client."""
        if self._client is None:
            self._client = get_firestore_client()
        return self._client

    async def get_document(self, collection: str, document_id: str) -> dict[str, Any] | None:
        """Fetch one document by id."""
        snapshot = await self.client.collection(collection).document(document_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()
