"""Clone pipeline: drop, replicate structure, snapshot, write documents.

The pipeline runs strictly sequentially -- one remote call outstanding at a
time -- in this order:

1. Destructive modes (``full``, ``structure-only``) delete every collection
   in the destination database first.
2. Structure modes replay each source collection's schema through the
   schema replicator, in source listing order.
3. Data modes (``full``, ``data-only``, ``missing-only``) fetch every
   source document and write them to the snapshot file.
4. The snapshot is read back.  ``missing-only`` reduces each collection to
   the documents not yet present in the destination.
5. Each remaining document is sanitized and created with a fresh id.
6. The snapshot file is deleted only after step 5 finished without
   raising, so an interrupted run leaves it behind for ``resume=True``.

Per-entity failures never abort the run; they are collected into the
returned ``CloneResult``.  Listing failures and snapshot I/O errors
propagate.

Usage:
    from appwrite_clone.orchestrator import clone_database
    from appwrite_clone.config import CloneMode

    result = await clone_database(source, dest, config, mode=CloneMode.FULL)
    print(result.format_report())
    if result.has_failures:
        ...
"""

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from appwrite_clone.adapters.appwrite import unique_id
from appwrite_clone.adapters.base import DatabaseService
from appwrite_clone.config.models import CloneConfig, CloneMode
from appwrite_clone.data.diff import build_existing_record_index, select_missing
from appwrite_clone.data.sanitizer import ID_FIELD, Document, sanitize_document
from appwrite_clone.pagination import fetch_all_collections, fetch_all_documents
from appwrite_clone.schema.models import (
    Collection,
    CollectionStructureResult,
    EntityError,
)
from appwrite_clone.schema.polling import Sleep
from appwrite_clone.schema.replicator import replicate_collection_structure
from appwrite_clone.snapshot.models import Snapshot, SnapshotCollection
from appwrite_clone.snapshot.store import (
    delete_snapshot,
    read_snapshot,
    validate_snapshot,
    write_snapshot,
)

logger = logging.getLogger(__name__)

PHASE_DROP = "drop"
PHASE_STRUCTURE = "structure"
PHASE_FETCH = "fetch"
PHASE_WRITE = "write"


class CloneProgress(Protocol):
    """Receives phase progress from ``clone_database()``."""

    def start(self, phase: str, total: int) -> None: ...

    def advance(self, phase: str, label: str = "") -> None: ...

    def finish(self, phase: str) -> None: ...


class _NoProgress:
    def start(self, phase: str, total: int) -> None:
        pass

    def advance(self, phase: str, label: str = "") -> None:
        pass

    def finish(self, phase: str) -> None:
        pass


# ============================================================================
# Result Models
# ============================================================================


class DropResult(BaseModel):
    """Outcome of deleting every destination collection."""

    dropped: list[str] = Field(default_factory=list)
    errors: list[EntityError] = Field(default_factory=list)


class CollectionStats(BaseModel):
    """Aggregated structure replication outcome.

    ``attribute_errors`` and ``index_errors`` are keyed by collection id.
    """

    success: int = 0
    failed: int = 0
    errors: list[EntityError] = Field(default_factory=list)
    attribute_errors: dict[str, list[EntityError]] = Field(default_factory=dict)
    index_errors: dict[str, list[EntityError]] = Field(default_factory=dict)
    results: list[CollectionStructureResult] = Field(default_factory=list)

    def record(self, result: CollectionStructureResult) -> None:
        self.results.append(result)
        if result.success:
            self.success += 1
        else:
            self.failed += 1
            self.errors.append(
                EntityError(key=result.collection_id, error=result.error or "unknown error")
            )
        if result.attribute_errors:
            self.attribute_errors[result.collection_id] = list(result.attribute_errors)
        if result.index_errors:
            self.index_errors[result.collection_id] = list(result.index_errors)


class DocumentError(BaseModel):
    """A document that could not be created in the destination."""

    document_id: str
    error: str


class DocumentStats(BaseModel):
    """Aggregated document write outcome; ``errors`` keyed by collection id."""

    success: int = 0
    failed: int = 0
    skipped: int = 0
    errors: dict[str, list[DocumentError]] = Field(default_factory=dict)

    def record_failure(self, collection_id: str, document_id: str, error: str) -> None:
        self.failed += 1
        self.errors.setdefault(collection_id, []).append(
            DocumentError(document_id=document_id, error=error)
        )


class CloneResult(BaseModel):
    """Result of ``clone_database()``.

    Example:
        >>> result = CloneResult(
        ...     source_database_id="prod",
        ...     dest_database_id="staging",
        ...     mode=CloneMode.DATA_ONLY,
        ... )
        >>> result.has_failures
        False
    """

    source_database_id: str
    dest_database_id: str
    mode: CloneMode
    collections: CollectionStats = Field(default_factory=CollectionStats)
    documents: DocumentStats = Field(default_factory=DocumentStats)
    dropped: DropResult | None = None
    snapshot_path: str | None = None
    snapshot_deleted: bool = False
    resumed: bool = False

    @property
    def has_failures(self) -> bool:
        """True when any collection, attribute, index, document or drop failed."""
        return bool(
            self.collections.failed
            or self.collections.index_errors
            or self.documents.failed
            or (self.dropped and self.dropped.errors)
        )

    def format_report(self) -> str:
        """Format the run as a human-readable summary."""
        lines = [
            f"Clone {self.source_database_id} -> {self.dest_database_id} "
            f"({self.mode.value})"
        ]

        if self.dropped is not None:
            lines.append(f"\n  Dropped collections: {len(self.dropped.dropped)}")
            for err in self.dropped.errors:
                lines.append(f"    - {err.key}: {err.error}")

        if self.mode.replicate_structure:
            stats = self.collections
            lines.append(
                f"\n  Collections: {stats.success} succeeded, {stats.failed} failed"
            )
            for err in stats.errors:
                lines.append(f"    - {err.key}: {err.error}")
            for collection_id, errors in stats.attribute_errors.items():
                for err in errors:
                    lines.append(f"    - attribute {collection_id}.{err.key}: {err.error}")
            for collection_id, errors in stats.index_errors.items():
                for err in errors:
                    lines.append(f"    - index {collection_id}.{err.key}: {err.error}")

        if self.mode.replicate_data or self.mode.incremental:
            docs = self.documents
            summary = f"\n  Documents: {docs.success} created, {docs.failed} failed"
            if self.mode.incremental:
                summary += f", {docs.skipped} skipped (already present)"
            lines.append(summary)
            for collection_id, errors in docs.errors.items():
                lines.append(f"    {collection_id} ({len(errors)} failed):")
                for err in errors:
                    lines.append(f"      - {err.document_id}: {err.error}")

            if self.snapshot_path and not self.snapshot_deleted:
                lines.append(f"\n  Snapshot kept at {self.snapshot_path}")

        return "\n".join(lines)


# ============================================================================
# Pipeline steps
# ============================================================================


async def drop_destination_collections(
    dest: DatabaseService,
    dest_database_id: str,
    progress: CloneProgress | None = None,
) -> DropResult:
    """Delete every collection in the destination database.

    Per-collection delete failures are recorded; the listing failing
    propagates.
    """
    progress = progress or _NoProgress()
    result = DropResult()
    collections = await fetch_all_collections(dest, dest_database_id)

    progress.start(PHASE_DROP, len(collections))
    for item in collections:
        collection_id = item["$id"]
        try:
            await dest.delete_collection(dest_database_id, collection_id)
            result.dropped.append(collection_id)
            logger.debug("Deleted destination collection %s", collection_id)
        except Exception as e:
            logger.warning("Failed to delete collection %s: %s", collection_id, e)
            result.errors.append(EntityError(key=collection_id, error=str(e)))
        progress.advance(PHASE_DROP, item.get("name", collection_id))
    progress.finish(PHASE_DROP)

    logger.info("Dropped %d destination collection(s)", len(result.dropped))
    return result


async def fetch_snapshot(
    source: DatabaseService,
    config: CloneConfig,
    collections: list[Collection],
    progress: CloneProgress | None = None,
) -> Snapshot:
    """Fetch every document of every source collection into a ``Snapshot``."""
    progress = progress or _NoProgress()
    snapshot = Snapshot(
        source_id=config.source_database_id,
        dest_id=config.dest_database_id,
    )

    progress.start(PHASE_FETCH, len(collections))
    for collection in collections:
        documents = await fetch_all_documents(
            source, config.source_database_id, collection.id, config.batch_size
        )
        snapshot.collections.append(
            SnapshotCollection.from_documents(collection.id, collection.name, documents)
        )
        logger.debug("Fetched %d document(s) from %s", len(documents), collection.id)
        progress.advance(PHASE_FETCH, collection.name)
    progress.finish(PHASE_FETCH)

    logger.info(
        "Fetched %d document(s) from %d collection(s)",
        snapshot.total_documents,
        len(snapshot.collections),
    )
    return snapshot


def _resumable_snapshot(config: CloneConfig) -> bool:
    path = Path(config.snapshot_path)
    if not path.exists():
        return False

    report = validate_snapshot(
        path, config.source_database_id, config.dest_database_id
    )
    if not report["valid"]:
        logger.warning(
            "Ignoring snapshot %s: %s", path, "; ".join(report["errors"])
        )
        return False

    for warning in report["warnings"]:
        logger.warning("Snapshot %s: %s", path, warning)
    return True


async def write_documents(
    dest: DatabaseService,
    config: CloneConfig,
    snapshot: Snapshot,
    incremental: bool,
    stats: DocumentStats,
    progress: CloneProgress | None = None,
) -> None:
    """Create the snapshot's documents in the destination.

    In incremental mode each collection is first reduced to the documents
    whose key is not already present in the destination collection.
    Document creation failures are recorded in ``stats``; listing
    failures propagate.
    """
    progress = progress or _NoProgress()

    queues: list[tuple[str, list[Document]]] = []
    for collection in snapshot.collections:
        documents = collection.documents
        if incremental:
            index = await build_existing_record_index(
                dest,
                config.dest_database_id,
                collection.collection_id,
                config.identifier_field_for(collection.collection_id),
                config.batch_size,
            )
            documents, skipped = select_missing(documents, index)
            stats.skipped += skipped
            logger.info(
                "%s: %d missing, %d already present",
                collection.collection_id,
                len(documents),
                skipped,
            )
        queues.append((collection.collection_id, documents))

    progress.start(PHASE_WRITE, sum(len(docs) for _, docs in queues))
    for collection_id, documents in queues:
        for document in documents:
            source_id = str(document.get(ID_FIELD, ""))
            try:
                await dest.create_document(
                    config.dest_database_id,
                    collection_id,
                    unique_id(),
                    sanitize_document(document),
                )
                stats.success += 1
            except Exception as e:
                logger.warning(
                    "Failed to create document %s in %s: %s", source_id, collection_id, e
                )
                stats.record_failure(collection_id, source_id, str(e))
            progress.advance(PHASE_WRITE, collection_id)
    progress.finish(PHASE_WRITE)


async def clone_database(
    source: DatabaseService,
    dest: DatabaseService,
    config: CloneConfig,
    *,
    mode: CloneMode | None = None,
    resume: bool = False,
    progress: CloneProgress | None = None,
    sleep: Sleep = asyncio.sleep,
) -> CloneResult:
    """Clone the source database into the destination database.

    Args:
        source: Source service.
        dest: Destination service (may be the same object as ``source``).
        config: Run configuration (database ids, batch size, poll bounds,
            snapshot path, identifier fields).
        mode: Clone mode; falls back to ``config.mode``.
        resume: Reuse a valid snapshot left by an interrupted run for the
            same source/destination pair instead of fetching again.
        progress: Optional progress receiver.
        sleep: Async wait function used between readiness checks.

    Returns:
        ``CloneResult`` with per-collection and per-document outcomes.

    Raises:
        ValueError: If no mode is given or the mode is ``export-csv``,
            or a destructive mode targets the source database itself.
        Exception: Listing and snapshot I/O errors propagate; the snapshot
            file is left on disk.

    Example:
        result = await clone_database(
            adapter, adapter, config, mode=CloneMode.MISSING_ONLY
        )
    """
    mode = mode or config.mode
    if mode is None:
        raise ValueError("No clone mode selected")
    if not mode.requires_destination:
        raise ValueError(f"Mode '{mode.value}' does not write to a destination database")
    if mode.is_destructive and config.source_database_id == config.dest_database_id:
        raise ValueError(
            f"Source and destination are both '{config.source_database_id}'; "
            f"mode '{mode.value}' would drop the source collections"
        )

    progress = progress or _NoProgress()
    result = CloneResult(
        source_database_id=config.source_database_id,
        dest_database_id=config.dest_database_id,
        mode=mode,
    )
    logger.info(
        "Starting %s clone: %s -> %s",
        mode.value,
        config.source_database_id,
        config.dest_database_id,
    )

    if mode.is_destructive:
        result.dropped = await drop_destination_collections(
            dest, config.dest_database_id, progress
        )

    collections: list[Collection] | None = None

    if mode.replicate_structure:
        collections = [
            Collection.model_validate(item)
            for item in await fetch_all_collections(source, config.source_database_id)
        ]
        progress.start(PHASE_STRUCTURE, len(collections))
        for collection in collections:
            structure = await replicate_collection_structure(
                source,
                dest,
                config.source_database_id,
                config.dest_database_id,
                collection,
                poll=config.poll,
                sleep=sleep,
            )
            result.collections.record(structure)
            progress.advance(PHASE_STRUCTURE, collection.name)
        progress.finish(PHASE_STRUCTURE)

    if not (mode.replicate_data or mode.incremental):
        return result

    snapshot_path = Path(config.snapshot_path)
    result.snapshot_path = str(snapshot_path)

    if resume and _resumable_snapshot(config):
        logger.info("Resuming from snapshot %s", snapshot_path)
        result.resumed = True
    else:
        if collections is None:
            collections = [
                Collection.model_validate(item)
                for item in await fetch_all_collections(source, config.source_database_id)
            ]
        snapshot = await fetch_snapshot(source, config, collections, progress)
        write_snapshot(snapshot, snapshot_path)

    snapshot = read_snapshot(snapshot_path)
    await write_documents(
        dest, config, snapshot, mode.incremental, result.documents, progress
    )

    result.snapshot_deleted = delete_snapshot(snapshot_path)
    logger.info(
        "Documents: %d created, %d failed, %d skipped",
        result.documents.success,
        result.documents.failed,
        result.documents.skipped,
    )
    return result
