"""Snapshot models -- the on-disk checkpoint between fetch and write.

The snapshot file is plain JSON with camelCase keys:

    {
      "sourceId": "prod",
      "destId": "staging",
      "fetchedAt": "2026-01-15T10:30:00Z",
      "collections": [
        {"collectionId": "books", "collectionName": "Books",
         "documentCount": 2, "documents": [{...}, {...}]}
      ]
    }

Usage:
    from appwrite_clone.snapshot.models import Snapshot, SnapshotCollection

    snapshot = Snapshot(source_id="prod", dest_id="staging", collections=[...])
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotCollection(BaseModel):
    """Fetched documents of one source collection."""

    model_config = ConfigDict(populate_by_name=True)

    collection_id: str = Field(alias="collectionId")
    collection_name: str = Field(alias="collectionName")
    document_count: int = Field(default=0, alias="documentCount")
    documents: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_documents(
        cls,
        collection_id: str,
        collection_name: str,
        documents: list[dict[str, Any]],
    ) -> "SnapshotCollection":
        return cls(
            collection_id=collection_id,
            collection_name=collection_name,
            document_count=len(documents),
            documents=documents,
        )


class Snapshot(BaseModel):
    """Self-contained record of every document fetched from the source."""

    model_config = ConfigDict(populate_by_name=True)

    source_id: str = Field(alias="sourceId")
    dest_id: str = Field(alias="destId")
    fetched_at: datetime = Field(default_factory=_utcnow, alias="fetchedAt")
    collections: list[SnapshotCollection] = Field(default_factory=list)

    @property
    def total_documents(self) -> int:
        return sum(len(c.documents) for c in self.collections)

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-ready dict using the on-disk key names."""
        return self.model_dump(mode="json", by_alias=True)
