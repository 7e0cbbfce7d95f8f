"""
Document and Snapshot models.

The backing store is a document database seen through a small collaborator
interface. Observers never receive diffs: every change delivers a full
Snapshot of the collection, which replaces whatever the observer held.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class StoredDocument(BaseModel):
    """A document as held by the store: id, version and JSON body."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    version: int = Field(default=1, ge=1)
    data: dict[str, Any] = Field(default_factory=dict)


class Snapshot(BaseModel):
    """Complete state of one collection at a point in time."""
    model_config = ConfigDict(frozen=True)

    collection: str
    documents: tuple[StoredDocument, ...] = ()
    taken_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_empty(self) -> bool:
        return not self.documents

    @property
    def size(self) -> int:
        return len(self.documents)

    def by_id(self, doc_id: str) -> Optional[StoredDocument]:
        for document in self.documents:
            if document.id == doc_id:
                return document
        return None
