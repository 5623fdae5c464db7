"""Document handling: sanitization and incremental diffing.

Usage:
    from appwrite_clone.data import sanitize_document, METADATA_FIELDS
    from appwrite_clone.data import build_existing_record_index, select_missing
"""

from appwrite_clone.data.diff import (
    ExistingRecordIndex,
    build_existing_record_index,
    content_key,
    document_key,
    is_document_missing,
    select_missing,
)
from appwrite_clone.data.sanitizer import (
    METADATA_FIELDS,
    Document,
    JsonValue,
    is_relationship_expansion,
    sanitize_document,
)

__all__ = [
    "METADATA_FIELDS",
    "Document",
    "JsonValue",
    "is_relationship_expansion",
    "sanitize_document",
    "ExistingRecordIndex",
    "build_existing_record_index",
    "content_key",
    "document_key",
    "is_document_missing",
    "select_missing",
]
