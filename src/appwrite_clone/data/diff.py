"""Existence diffing for incremental ("missing-only") sync.

Source documents are re-created with fresh ids, so the destination cannot
be matched by ``$id``.  Instead each document gets a key:

1. the value of the collection's configured identifier field, when one is
   configured and the document has a non-empty value for it;
2. otherwise a content key -- the canonical JSON of the sanitized document.

A source document is missing when its key is not among the keys of the
documents already in the destination collection.

Limitation: content keys only match exact field-for-field duplicates.  A
record whose fields changed since it was copied gets a new key and is
inserted again as a separate record.

Usage:
    from appwrite_clone.data.diff import build_existing_record_index, select_missing

    index = await build_existing_record_index(dest, "staging", "orders", "order_number")
    missing, skipped = select_missing(source_documents, index)
"""

import json
import logging
from dataclasses import dataclass, field

from appwrite_clone.adapters.base import DatabaseService
from appwrite_clone.data.sanitizer import Document, sanitize_document
from appwrite_clone.pagination import fetch_all_documents

logger = logging.getLogger(__name__)

# Key spaces are kept apart so an identifier value can never equal a content key
IDENTIFIER_KEY = "identifier"
CONTENT_KEY = "content"

DocumentKey = tuple[str, str]


def content_key(document: Document) -> str:
    """Canonical JSON of the sanitized document (sorted keys, compact)."""
    return json.dumps(
        sanitize_document(document),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def _has_identifier(document: Document, identifier_field: str | None) -> bool:
    return bool(identifier_field) and document.get(identifier_field) not in (None, "")


def document_key(document: Document, identifier_field: str | None) -> DocumentKey:
    """Existence key of a document under the identifier-or-content rule."""
    if _has_identifier(document, identifier_field):
        value = document[identifier_field]
        if not isinstance(value, str):
            value = json.dumps(value, sort_keys=True, default=str)
        return (IDENTIFIER_KEY, value)
    return (CONTENT_KEY, content_key(document))


@dataclass
class ExistingRecordIndex:
    """Keys of the documents already present in a destination collection."""

    collection_id: str
    identifier_field: str | None = None
    keys: set[DocumentKey] = field(default_factory=set)

    def add(self, document: Document) -> None:
        self.keys.add(document_key(document, self.identifier_field))

    def contains(self, document: Document) -> bool:
        return document_key(document, self.identifier_field) in self.keys

    def __len__(self) -> int:
        return len(self.keys)


async def build_existing_record_index(
    dest: DatabaseService,
    dest_database_id: str,
    collection_id: str,
    identifier_field: str | None = None,
    page_size: int = 100,
) -> ExistingRecordIndex:
    """Fetch every destination document of a collection and index its key.

    Args:
        dest: Destination service.
        dest_database_id: Destination database id.
        collection_id: Collection to index.
        identifier_field: Configured unique field for this collection, or
            ``None`` to key by content.
        page_size: Documents per listing request.

    Returns:
        ``ExistingRecordIndex`` of the collection.

    Raises:
        Exception: Listing errors propagate.
    """
    index = ExistingRecordIndex(collection_id=collection_id, identifier_field=identifier_field)
    for document in await fetch_all_documents(dest, dest_database_id, collection_id, page_size):
        index.add(document)

    logger.debug(
        "Indexed %d existing keys in %s (identifier field: %s)",
        len(index),
        collection_id,
        identifier_field or "<content>",
    )
    return index


def is_document_missing(document: Document, index: ExistingRecordIndex) -> bool:
    return not index.contains(document)


def select_missing(
    documents: list[Document],
    index: ExistingRecordIndex,
) -> tuple[list[Document], int]:
    """Split source documents into the missing ones and a skipped count.

    Returns:
        ``(missing_documents, skipped_count)`` with the missing documents
        in source order.
    """
    missing = [doc for doc in documents if is_document_missing(doc, index)]
    return missing, len(documents) - len(missing)
