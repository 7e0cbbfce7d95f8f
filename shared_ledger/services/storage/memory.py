"""
In-Memory Document Store

A process-local implementation of the document store interface. It backs
tests and single-process use, and shows the delivery contract plainly:
every successful write publishes a full, independent snapshot to every
subscriber of the collection.

Mutations never await between reading and writing, so on a single event
loop each write is atomic.
"""

import copy
from typing import Any, Optional
from uuid import uuid4

from shared_ledger.activity import ActivityLogger
from shared_ledger.models.documents import Snapshot, StoredDocument
from shared_ledger.services.storage.interface import (
    DocumentStoreInterface,
    NotFoundError,
    SnapshotCallback,
    Unsubscribe,
    WriteConflictError,
)


class InMemoryDocumentStore(DocumentStoreInterface):
    """Dict-backed document store with synchronous snapshot push."""

    def __init__(self, activity_logger: Optional[ActivityLogger] = None):
        super().__init__(activity_logger)
        self._collections: dict[str, dict[str, StoredDocument]] = {}
        self._subscribers: dict[str, list[SnapshotCallback]] = {}

    def _snapshot(self, collection: str) -> Snapshot:
        documents = self._collections.get(collection, {})
        return Snapshot(
            collection=collection,
            documents=tuple(
                StoredDocument(id=d.id, version=d.version, data=copy.deepcopy(d.data))
                for d in documents.values()
            ),
        )

    def _publish(self, collection: str) -> None:
        for callback in list(self._subscribers.get(collection, [])):
            self._deliver(callback, self._snapshot(collection))

    async def fetch(self, collection: str) -> Snapshot:
        return self._snapshot(collection)

    async def insert(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        self._collections.setdefault(collection, {})[doc_id] = StoredDocument(
            id=doc_id,
            version=1,
            data=copy.deepcopy(data),
        )
        self._publish(collection)
        return doc_id

    async def remove(self, collection: str, doc_id: str) -> bool:
        removed = self._collections.get(collection, {}).pop(doc_id, None)
        if removed is None:
            return False
        self._publish(collection)
        return True

    async def patch(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        documents = self._collections.get(collection, {})
        current = documents.get(doc_id)
        if current is None:
            raise NotFoundError(f"Document not found: {collection}/{doc_id}")
        if expected_version is not None and current.version != expected_version:
            raise WriteConflictError(collection, doc_id, expected_version, current.version)

        updated = StoredDocument(
            id=doc_id,
            version=current.version + 1,
            data={**current.data, **copy.deepcopy(fields)},
        )
        documents[doc_id] = updated
        self._publish(collection)
        return updated.version

    async def subscribe(self, collection: str, callback: SnapshotCallback) -> Unsubscribe:
        subscribers = self._subscribers.setdefault(collection, [])
        subscribers.append(callback)
        self._deliver(callback, self._snapshot(collection))

        def unsubscribe() -> None:
            if callback in subscribers:
                subscribers.remove(callback)

        return unsubscribe

    def subscriber_count(self, collection: str) -> int:
        return len(self._subscribers.get(collection, []))
