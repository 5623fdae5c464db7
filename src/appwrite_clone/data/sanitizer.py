"""Document sanitization for writes to the destination.

The service injects identity, timestamp, permission and sequence fields
into every document it returns, and expands relationship fields into the
full related documents.  It rejects those metadata fields on writes and
expects relationships as document ids, so every document is cleaned
before it is re-created:

- reserved metadata keys are dropped at every depth;
- a relationship expansion (an object carrying both ``$id`` and
  ``$collectionId``) collapses to its ``$id``;
- other objects are cleaned recursively and arrays element-wise;
- scalars pass through unchanged.

Usage:
    from appwrite_clone.data.sanitizer import sanitize_document

    data = sanitize_document(document)
    await dest.create_document(db_id, collection_id, unique_id(), data)
"""

from typing import Any, TypeAlias

JsonValue: TypeAlias = (
    None | bool | int | float | str | list["JsonValue"] | dict[str, "JsonValue"]
)
Document: TypeAlias = dict[str, JsonValue]

ID_FIELD = "$id"
COLLECTION_ID_FIELD = "$collectionId"

METADATA_FIELDS = (
    "$id",
    "$collectionId",
    "$databaseId",
    "$createdAt",
    "$updatedAt",
    "$permissions",
    "$sequence",
)

_METADATA = frozenset(METADATA_FIELDS)


def is_relationship_expansion(value: Any) -> bool:
    """True if ``value`` is an expanded related document rather than plain data."""
    return isinstance(value, dict) and ID_FIELD in value and COLLECTION_ID_FIELD in value


def _clean_value(value: JsonValue) -> JsonValue:
    if is_relationship_expansion(value):
        return value[ID_FIELD]
    if isinstance(value, dict):
        return _clean_object(value)
    if isinstance(value, list):
        return [_clean_value(item) for item in value]
    return value


def _clean_object(obj: dict[str, JsonValue]) -> dict[str, JsonValue]:
    return {key: _clean_value(value) for key, value in obj.items() if key not in _METADATA}


def sanitize_document(document: Document) -> Document:
    """Return the writable field map of a document.

    The input is not modified.

    Example:
        >>> sanitize_document({
        ...     "$id": "b1",
        ...     "$permissions": [],
        ...     "title": "Dune",
        ...     "author": {"$id": "a1", "$collectionId": "authors", "name": "Frank"},
        ... })
        {'title': 'Dune', 'author': 'a1'}
    """
    return _clean_object(document)
