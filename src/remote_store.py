"""Account-scoped remote document store (Cloud Firestore)."""

from typing import Protocol, Tuple

from firebase_config import get_firestore_client

DocumentPath = Tuple[str, ...]


def user_document_path(user_id: str) -> DocumentPath:
    """Path of the document holding {sessions, templates, lastUpdated}."""
    return ("users", user_id)


def health_metrics_document_path(user_id: str, metric_type: str) -> DocumentPath:
    """Path of the document holding {entries, lastUpdated} for one metric type."""
    return ("users", user_id, "healthMetrics", metric_type)


class RemoteStore(Protocol):
    """Opaque key-value document service addressed by user and record type."""

    def fetch(self, path: DocumentPath) -> dict | None:
        """Return the document at ``path``, or None if it does not exist."""
        ...

    def upsert(self, path: DocumentPath, document: dict) -> None:
        """Merge ``document`` into the document at ``path``."""
        ...


class FirestoreRemoteStore:
    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        # Created lazily so that offline use never touches Firebase
        if self._client is None:
            self._client = get_firestore_client()
        return self._client

    def fetch(self, path: DocumentPath) -> dict | None:
        snapshot = self.client.document(*path).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def upsert(self, path: DocumentPath, document: dict) -> None:
        self.client.document(*path).set(document, merge=True)


_remote_store = FirestoreRemoteStore()


def get_remote_store() -> RemoteStore:
    """Dependency function that returns the shared remote store."""
    return _remote_store
