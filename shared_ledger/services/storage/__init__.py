"""
Storage Services Package

Provides the abstract document store interface and its implementations:
an in-memory store and a Google Sheets backed store.
"""

from shared_ledger.services.storage.interface import (
    ConnectionError,
    DocumentStoreInterface,
    NotFoundError,
    SnapshotCallback,
    StorageError,
    Unsubscribe,
    WriteConflictError,
)
from shared_ledger.services.storage.memory import InMemoryDocumentStore
from shared_ledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)

__all__ = [
    # Interfaces
    "DocumentStoreInterface",
    "SnapshotCallback",
    "Unsubscribe",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    "WriteConflictError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
]
