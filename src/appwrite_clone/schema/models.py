"""Pydantic models for collection structure and structure replication results.

This module contains schema-domain models:
- Service objects: Collection, Attribute, Index (parsed from API JSON)
- Attribute classification: AttributeKind, AttributeSide
- Replication results: EntityError, CollectionStructureResult

Service objects are built with ``Model.model_validate(item)`` straight from
listing responses; ``$``-prefixed and camelCase keys map through aliases.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

STATUS_AVAILABLE = "available"
# Terminal statuses that will never turn into ``available``
FAILED_STATUSES = frozenset({"failed", "stuck"})


# ============================================================================
# Attribute classification
# ============================================================================


class AttributeKind(str, Enum):
    """Concrete attribute types, one creation call each."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    EMAIL = "email"
    IP = "ip"
    URL = "url"
    ENUM = "enum"
    RELATIONSHIP = "relationship"


class AttributeSide(str, Enum):
    """Which end of a relationship an attribute is."""

    PARENT = "parent"
    CHILD = "child"


# The service reports these as type "string" with a format
_STRING_FORMATS = {
    "email": AttributeKind.EMAIL,
    "ip": AttributeKind.IP,
    "url": AttributeKind.URL,
    "enum": AttributeKind.ENUM,
}

_TYPE_ALIASES = {"double": AttributeKind.FLOAT}


# ============================================================================
# Service objects
# ============================================================================


class _ServiceModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Collection(_ServiceModel):
    """A collection as listed by the service.

    Example:
        >>> c = Collection.model_validate({"$id": "books", "name": "Books"})
        >>> c.id, c.enabled
        ('books', True)
    """

    id: str = Field(alias="$id")
    name: str
    permissions: list[str] = Field(default_factory=list, alias="$permissions")
    document_security: bool = Field(default=False, alias="documentSecurity")
    enabled: bool = True


class Attribute(_ServiceModel):
    """A typed field definition within a collection.

    Relationship attributes carry the two-way link descriptor
    (``related_collection``, ``relation_type``, ``two_way``,
    ``two_way_key``, ``on_delete``) and the ``side`` marker.  A ``child``
    side is created by the service together with its parent and is never
    replayed explicitly.
    """

    key: str
    type: str
    status: str = STATUS_AVAILABLE
    error: str | None = None
    required: bool = False
    array: bool = False
    default: Any = None
    format: str | None = None
    size: int | None = None
    min: int | float | None = None
    max: int | float | None = None
    elements: list[str] = Field(default_factory=list)

    # Relationship descriptor
    related_collection: str | None = Field(default=None, alias="relatedCollection")
    relation_type: str | None = Field(default=None, alias="relationType")
    two_way: bool = Field(default=False, alias="twoWay")
    two_way_key: str | None = Field(default=None, alias="twoWayKey")
    on_delete: str | None = Field(default=None, alias="onDelete")
    side: AttributeSide | None = None

    @property
    def kind(self) -> AttributeKind | None:
        """Creation call to use, or ``None`` for types this tool cannot create."""
        if self.type == AttributeKind.STRING.value and self.format in _STRING_FORMATS:
            return _STRING_FORMATS[self.format]
        if self.type in _TYPE_ALIASES:
            return _TYPE_ALIASES[self.type]
        try:
            return AttributeKind(self.type)
        except ValueError:
            return None

    @property
    def is_child_relationship(self) -> bool:
        return self.type == AttributeKind.RELATIONSHIP.value and self.side is AttributeSide.CHILD


class Index(_ServiceModel):
    """A query index over one or more attributes."""

    key: str
    type: str
    status: str = STATUS_AVAILABLE
    error: str | None = None
    attributes: list[str] = Field(default_factory=list)
    orders: list[str | None] = Field(default_factory=list)


# ============================================================================
# Replication results
# ============================================================================


class EntityError(BaseModel):
    """A failure attached to one attribute, index, or collection."""

    key: str
    error: str


class CollectionStructureResult(BaseModel):
    """Result of replicating one collection's structure.

    ``success`` is False when the collection shell could not be created or
    when any attribute failed.  Index failures are reported in
    ``index_errors`` without failing the collection.

    Example:
        >>> result = CollectionStructureResult(collection_id="books", collection_name="Books")
        >>> result.success
        False
    """

    collection_id: str
    collection_name: str
    success: bool = False
    error: str | None = None
    attributes_created: int = 0
    child_attributes_skipped: int = 0
    indexes_created: int = 0
    attribute_errors: list[EntityError] = Field(default_factory=list)
    index_errors: list[EntityError] = Field(default_factory=list)
