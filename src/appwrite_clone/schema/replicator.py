"""Structure replication -- rebuild one collection's schema in the destination.

Creates the collection shell, then replays attributes and indexes one at a
time.  Each created object is polled until the service reports it
``available`` before the next one is submitted: the service rejects
operations that depend on an attribute that is still processing.

Failure partitioning:
- Collection shell creation fails -> collection failed, nothing replayed.
- Any attribute fails (error response, readiness timeout, failed status)
  -> recorded, remaining attributes still replayed, collection failed.
- Any index fails -> recorded only; the collection still succeeds.
- An index over an attribute that never became available is not
  submitted and is recorded as an index failure.

Usage:
    from appwrite_clone.schema.replicator import replicate_collection_structure

    result = await replicate_collection_structure(
        source, dest, "prod", "staging", collection, poll=PollSettings(),
    )
    if not result.success:
        print(result.error, result.attribute_errors)
"""

import asyncio
import logging

from appwrite_clone.adapters.base import DatabaseService
from appwrite_clone.config.models import PollSettings
from appwrite_clone.pagination import fetch_all_attributes, fetch_all_indexes
from appwrite_clone.schema.models import (
    Attribute,
    AttributeKind,
    Collection,
    CollectionStructureResult,
    EntityError,
    Index,
)
from appwrite_clone.schema.polling import (
    PollOutcome,
    PollPolicy,
    Sleep,
    wait_until_available,
)

logger = logging.getLogger(__name__)

DEFAULT_STRING_SIZE = 255

_OUTCOME_MESSAGES = {
    PollOutcome.TIMEOUT: "did not become available after {attempts} status checks",
    PollOutcome.FAILED: "service reported a failed status",
}


class UnsupportedAttributeError(ValueError):
    """Raised for attribute types the replicator has no creation call for."""


# ------------------------------------------------------------------
# Single-object creation
# ------------------------------------------------------------------


async def create_attribute(
    dest: DatabaseService,
    database_id: str,
    collection_id: str,
    attribute: Attribute,
) -> None:
    """Submit one attribute using the creation call for its type.

    Raises:
        UnsupportedAttributeError: If the attribute type is unknown.
        Exception: Any error returned by the service.
    """
    kind = attribute.kind
    key = attribute.key
    required = attribute.required
    array = attribute.array
    # The service rejects a default value on a required attribute
    default = None if required else attribute.default

    if kind is AttributeKind.STRING:
        await dest.create_string_attribute(
            database_id, collection_id, key,
            attribute.size or DEFAULT_STRING_SIZE, required, default, array,
        )
    elif kind is AttributeKind.INTEGER:
        await dest.create_integer_attribute(
            database_id, collection_id, key, required,
            attribute.min, attribute.max, default, array,
        )
    elif kind is AttributeKind.FLOAT:
        await dest.create_float_attribute(
            database_id, collection_id, key, required,
            attribute.min, attribute.max, default, array,
        )
    elif kind is AttributeKind.BOOLEAN:
        await dest.create_boolean_attribute(
            database_id, collection_id, key, required, default, array
        )
    elif kind is AttributeKind.DATETIME:
        await dest.create_datetime_attribute(
            database_id, collection_id, key, required, default, array
        )
    elif kind is AttributeKind.EMAIL:
        await dest.create_email_attribute(
            database_id, collection_id, key, required, default, array
        )
    elif kind is AttributeKind.IP:
        await dest.create_ip_attribute(
            database_id, collection_id, key, required, default, array
        )
    elif kind is AttributeKind.URL:
        await dest.create_url_attribute(
            database_id, collection_id, key, required, default, array
        )
    elif kind is AttributeKind.ENUM:
        await dest.create_enum_attribute(
            database_id, collection_id, key,
            attribute.elements, required, default, array,
        )
    elif kind is AttributeKind.RELATIONSHIP:
        await dest.create_relationship_attribute(
            database_id,
            collection_id,
            attribute.related_collection,
            attribute.relation_type,
            attribute.two_way,
            key,
            attribute.two_way_key,
            attribute.on_delete or "restrict",
        )
    else:
        raise UnsupportedAttributeError(f"Unknown type: {attribute.type}")


async def create_index(
    dest: DatabaseService,
    database_id: str,
    collection_id: str,
    index: Index,
) -> None:
    """Submit one index."""
    await dest.create_index(
        database_id,
        collection_id,
        index.key,
        index.type,
        list(index.attributes),
        list(index.orders),
    )


# ------------------------------------------------------------------
# Status lookups (one full listing per check)
# ------------------------------------------------------------------


async def attribute_status(
    service: DatabaseService,
    database_id: str,
    collection_id: str,
    key: str,
) -> str | None:
    for item in await fetch_all_attributes(service, database_id, collection_id):
        if item.get("key") == key:
            return item.get("status")
    return None


async def index_status(
    service: DatabaseService,
    database_id: str,
    collection_id: str,
    key: str,
) -> str | None:
    for item in await fetch_all_indexes(service, database_id, collection_id):
        if item.get("key") == key:
            return item.get("status")
    return None


# ------------------------------------------------------------------
# Attribute and index replay
# ------------------------------------------------------------------


async def replicate_attributes(
    dest: DatabaseService,
    database_id: str,
    collection_id: str,
    attributes: list[Attribute],
    policy: PollPolicy,
    result: CollectionStructureResult,
) -> set[str]:
    """Create attributes in source order, waiting for each to be available.

    Child-side relationship attributes are skipped: the service creates
    them along with their parent.

    Args:
        dest: Destination service.
        database_id: Destination database id.
        collection_id: Collection to create the attributes in.
        attributes: Source attributes in source order.
        policy: Readiness poll bounds.
        result: Collection result updated in place.

    Returns:
        Keys of attributes that were submitted but are not available.
    """
    unavailable: set[str] = set()

    for attribute in attributes:
        if attribute.is_child_relationship:
            logger.debug("Skipping child relationship attribute: %s", attribute.key)
            result.child_attributes_skipped += 1
            continue

        try:
            await create_attribute(dest, database_id, collection_id, attribute)
            outcome = await wait_until_available(
                lambda: attribute_status(dest, database_id, collection_id, attribute.key),
                policy,
            )
        except Exception as e:
            logger.warning("Attribute %s.%s failed: %s", collection_id, attribute.key, e)
            result.attribute_errors.append(EntityError(key=attribute.key, error=str(e)))
            unavailable.add(attribute.key)
            continue

        if outcome is not PollOutcome.AVAILABLE:
            message = _OUTCOME_MESSAGES[outcome].format(attempts=policy.max_attempts)
            logger.warning("Attribute %s.%s %s", collection_id, attribute.key, message)
            result.attribute_errors.append(EntityError(key=attribute.key, error=message))
            unavailable.add(attribute.key)
            continue

        logger.debug("Attribute %s.%s available", collection_id, attribute.key)
        result.attributes_created += 1

    return unavailable


async def replicate_indexes(
    dest: DatabaseService,
    database_id: str,
    collection_id: str,
    indexes: list[Index],
    unavailable_attributes: set[str],
    policy: PollPolicy,
    result: CollectionStructureResult,
) -> None:
    """Create indexes in source order, waiting for each to be available.

    An index referencing any key in ``unavailable_attributes`` is not
    submitted.
    """
    for index in indexes:
        blocked = [a for a in index.attributes if a in unavailable_attributes]
        if blocked:
            message = f"Attribute(s) not available: {', '.join(blocked)}"
            logger.warning("Index %s.%s not submitted: %s", collection_id, index.key, message)
            result.index_errors.append(EntityError(key=index.key, error=message))
            continue

        try:
            await create_index(dest, database_id, collection_id, index)
            outcome = await wait_until_available(
                lambda: index_status(dest, database_id, collection_id, index.key),
                policy,
            )
        except Exception as e:
            logger.warning("Index %s.%s failed: %s", collection_id, index.key, e)
            result.index_errors.append(EntityError(key=index.key, error=str(e)))
            continue

        if outcome is not PollOutcome.AVAILABLE:
            message = _OUTCOME_MESSAGES[outcome].format(attempts=policy.max_attempts)
            logger.warning("Index %s.%s %s", collection_id, index.key, message)
            result.index_errors.append(EntityError(key=index.key, error=message))
            continue

        logger.debug("Index %s.%s available", collection_id, index.key)
        result.indexes_created += 1


async def replicate_collection_structure(
    source: DatabaseService,
    dest: DatabaseService,
    source_database_id: str,
    dest_database_id: str,
    collection: Collection,
    poll: PollSettings | None = None,
    sleep: Sleep = asyncio.sleep,
) -> CollectionStructureResult:
    """Create a collection in the destination and replay its schema.

    The destination collection reuses the source collection's id, name,
    permissions, document-security flag and enabled flag.

    Args:
        source: Source service (attributes and indexes are read from it).
        dest: Destination service.
        source_database_id: Source database id.
        dest_database_id: Destination database id.
        collection: Source collection.
        poll: Readiness poll bounds (defaults: 30 attribute checks,
            60 index checks, 1 second apart).
        sleep: Async wait function used between status checks.

    Returns:
        ``CollectionStructureResult`` -- never raises for per-entity
        failures.

    Example:
        result = await replicate_collection_structure(
            service, service, "prod", "staging", collection,
            sleep=no_wait,
        )
    """
    poll = poll or PollSettings()
    result = CollectionStructureResult(
        collection_id=collection.id,
        collection_name=collection.name,
    )
    attribute_policy = PollPolicy(poll.attribute_max_attempts, poll.interval_seconds, sleep)
    index_policy = PollPolicy(poll.index_max_attempts, poll.interval_seconds, sleep)

    logger.info("Cloning collection structure: %s (%s)", collection.name, collection.id)

    try:
        await dest.create_collection(
            dest_database_id,
            collection.id,
            collection.name,
            collection.permissions,
            collection.document_security,
            collection.enabled,
        )

        attributes = [
            Attribute.model_validate(item)
            for item in await fetch_all_attributes(source, source_database_id, collection.id)
        ]
        unavailable = await replicate_attributes(
            dest, dest_database_id, collection.id, attributes, attribute_policy, result
        )

        indexes = [
            Index.model_validate(item)
            for item in await fetch_all_indexes(source, source_database_id, collection.id)
        ]
        await replicate_indexes(
            dest, dest_database_id, collection.id, indexes, unavailable, index_policy, result
        )
    except Exception as e:
        logger.warning("Failed to clone collection %s: %s", collection.name, e)
        result.success = False
        result.error = str(e)
        return result

    # A missing attribute breaks every later document write
    if result.attribute_errors:
        result.success = False
        result.error = f"{len(result.attribute_errors)} attribute(s) failed to create"
        return result

    result.success = True
    return result
