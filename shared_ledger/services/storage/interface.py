"""
Abstract Document Store Interface

DESIGN DECISION: The core talks to its backing store through a small
document-database interface. This allows us to:
1. Swap Google Sheets for a real document database later
2. Use in-memory storage for testing
3. Keep ledger and credential logic decoupled from storage implementation

Reads are push-based: `subscribe` delivers the complete collection as a
Snapshot immediately and again after every change, whoever made it. There
is no diffing and no partial update; observers replace what they held.

Writes that read-modify-write a document (the owner document with its
embedded managers) pass `expected_version` to `patch`. A stale version
raises WriteConflictError instead of silently overwriting.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from shared_ledger.activity import ActivityLogger
from shared_ledger.models.documents import Snapshot


SnapshotCallback = Callable[[Snapshot], None]
Unsubscribe = Callable[[], None]


class DocumentStoreInterface(ABC):
    """
    Abstract interface for document store operations.

    Any storage implementation (in-memory, Google Sheets, ...)
    must implement these methods.
    """

    def __init__(self, activity_logger: Optional[ActivityLogger] = None):
        self._activity = activity_logger or ActivityLogger()

    @abstractmethod
    async def fetch(self, collection: str) -> Snapshot:
        """
        Read the current state of a collection once.

        Args:
            collection: Collection name (e.g. 'admins', 'transactions')

        Returns:
            Snapshot of every document in the collection
        """
        pass

    @abstractmethod
    async def insert(self, collection: str, data: dict[str, Any]) -> str:
        """
        Insert a new document.

        Args:
            collection: Collection name
            data: Document body (JSON-compatible)

        Returns:
            The store-assigned document id

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def remove(self, collection: str, doc_id: str) -> bool:
        """
        Remove a document by id.

        Removing a document that does not exist is not an error.

        Returns:
            True if a document was removed, False if there was none
        """
        pass

    @abstractmethod
    async def patch(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        """
        Overwrite top-level fields of a document.

        Args:
            collection: Collection name
            doc_id: Document id
            fields: Top-level fields to replace
            expected_version: If given, only write when the stored version
                              still equals this value

        Returns:
            The new document version

        Raises:
            NotFoundError: If the document doesn't exist
            WriteConflictError: If expected_version is stale
        """
        pass

    @abstractmethod
    async def subscribe(self, collection: str, callback: SnapshotCallback) -> Unsubscribe:
        """
        Observe a collection.

        The callback receives the current Snapshot before this method
        returns, then a fresh full Snapshot after every change.

        Returns:
            A function that stops delivery when called
        """
        pass

    async def close(self) -> None:
        """Stop any background producers. Default: nothing to stop."""
        return None

    def _deliver(self, callback: SnapshotCallback, snapshot: Snapshot) -> None:
        """Hand a snapshot to one subscriber; a failing subscriber never stops delivery."""
        try:
            callback(snapshot)
        except Exception as e:
            self._activity.log_subscriber_failed(snapshot.collection, str(e))


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class WriteConflictError(StorageError):
    """The document changed since it was read."""

    def __init__(self, collection: str, doc_id: str, expected: int, actual: int):
        super().__init__(
            f"Version conflict on {collection}/{doc_id}: expected {expected}, found {actual}"
        )
        self.collection = collection
        self.doc_id = doc_id
        self.expected = expected
        self.actual = actual


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
