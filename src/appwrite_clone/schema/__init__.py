"""Collection structure: models, readiness polling, and replication.

Usage:
    from appwrite_clone.schema import Collection, Attribute, Index
    from appwrite_clone.schema import replicate_collection_structure
    from appwrite_clone.schema import PollPolicy, wait_until_available
"""

from appwrite_clone.schema.models import (
    Attribute,
    AttributeKind,
    AttributeSide,
    Collection,
    CollectionStructureResult,
    EntityError,
    Index,
)
from appwrite_clone.schema.polling import PollOutcome, PollPolicy, wait_until_available
from appwrite_clone.schema.replicator import (
    UnsupportedAttributeError,
    create_attribute,
    create_index,
    replicate_collection_structure,
)

__all__ = [
    "Collection",
    "Attribute",
    "AttributeKind",
    "AttributeSide",
    "Index",
    "EntityError",
    "CollectionStructureResult",
    "PollOutcome",
    "PollPolicy",
    "wait_until_available",
    "UnsupportedAttributeError",
    "create_attribute",
    "create_index",
    "replicate_collection_structure",
]
