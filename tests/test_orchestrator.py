"""Tests for the clone pipeline.

Runs ``clone_database`` against the in-memory fake service for each mode:
destructive drop, structure replay, snapshot lifecycle (write, read back,
delete, keep on failure, resume), document writes and the missing-only
re-run guarantee.
"""

import json
from unittest.mock import AsyncMock

import pytest

from appwrite_clone.adapters.appwrite import AppwriteError
from appwrite_clone.config.models import CloneMode
from appwrite_clone.orchestrator import (
    CloneResult,
    DocumentStats,
    clone_database,
    drop_destination_collections,
)
from appwrite_clone.snapshot import Snapshot, SnapshotCollection, write_snapshot

BOOK_TITLES = ["Dune", "Emma", "Ulysses"]


def _seed_books(service) -> None:
    """Source: one collection, a required string attribute, an index, 3 documents."""
    service.add_collection(
        "prod",
        "books",
        "Books",
        attributes=[{"key": "title", "type": "string", "size": 128, "required": True}],
        indexes=[{"key": "title_idx", "type": "key", "attributes": ["title"], "orders": ["ASC"]}],
        documents=[{"$id": f"src-{i}", "title": t} for i, t in enumerate(BOOK_TITLES)],
    )


class RecordingProgress:
    """CloneProgress that records every event."""

    def __init__(self) -> None:
        self.events: list[tuple] = []

    def start(self, phase, total):
        self.events.append(("start", phase, total))

    def advance(self, phase, label=""):
        self.events.append(("advance", phase))

    def finish(self, phase):
        self.events.append(("finish", phase))

    def phases(self) -> list[str]:
        return [e[1] for e in self.events if e[0] == "start"]


# ==================================================================
# End-to-end scenarios
# ==================================================================


class TestStructureThenData:
    """structure-only followed by data-only against the same destination."""

    async def test_structure_only_creates_schema_without_documents(
        self, service, config, no_wait
    ) -> None:
        """Collection, attribute and index exist; zero documents written."""
        _seed_books(service)

        result = await clone_database(
            service, service, config, mode=CloneMode.STRUCTURE_ONLY, sleep=no_wait
        )

        assert result.collections.success == 1
        assert result.collections.failed == 0
        dest = service.databases["staging"]["collections"]["books"]
        assert dest["attributes"][0]["key"] == "title"
        assert dest["attributes"][0]["status"] == "available"
        assert dest["indexes"][0]["key"] == "title_idx"
        assert dest["indexes"][0]["status"] == "available"
        assert service.documents("staging", "books") == []
        assert service.calls_named("create_document") == []
        assert result.snapshot_path is None
        assert not config.snapshot_path.exists()

    async def test_data_only_writes_sanitized_documents(self, service, config, no_wait) -> None:
        """Exactly 3 documents are written with fresh ids and no metadata."""
        _seed_books(service)
        await clone_database(service, service, config, mode=CloneMode.STRUCTURE_ONLY, sleep=no_wait)

        result = await clone_database(
            service, service, config, mode=CloneMode.DATA_ONLY, sleep=no_wait
        )

        assert result.documents.success == 3
        assert result.documents.failed == 0
        assert result.dropped is None
        written = service.documents("staging", "books")
        assert sorted(d["title"] for d in written) == sorted(BOOK_TITLES)
        assert not {d["$id"] for d in written} & {"src-0", "src-1", "src-2"}
        # The fake rejects any "$" key, so success proves sanitization
        for document in written:
            assert {k for k in document if not k.startswith("$")} == {"title"}
        for call in service.calls_named("create_document"):
            assert len(call[3]) == 20

    async def test_full_mode_drops_then_clones(self, service, config, no_wait) -> None:
        """Existing destination collections are deleted before replay."""
        _seed_books(service)
        service.add_collection("staging", "legacy")
        service.add_collection("staging", "books")

        result = await clone_database(service, service, config, mode=CloneMode.FULL, sleep=no_wait)

        assert sorted(result.dropped.dropped) == ["books", "legacy"]
        assert "legacy" not in service.databases["staging"]["collections"]
        assert result.collections.success == 1
        assert result.documents.success == 3
        assert result.has_failures is False


class TestMissingOnly:
    """Incremental sync inserts only absent documents and is re-runnable."""

    async def test_second_run_inserts_nothing(self, service, config, no_wait) -> None:
        """Running missing-only twice inserts zero documents the second time."""
        _seed_books(service)
        await clone_database(service, service, config, mode=CloneMode.STRUCTURE_ONLY, sleep=no_wait)

        first = await clone_database(service, service, config, mode=CloneMode.MISSING_ONLY, sleep=no_wait)
        second = await clone_database(service, service, config, mode=CloneMode.MISSING_ONLY, sleep=no_wait)

        assert first.documents.success == 3
        assert second.documents.success == 0
        assert second.documents.skipped == 3
        assert len(service.documents("staging", "books")) == 3

    async def test_uses_configured_identifier_field(self, service, config, no_wait) -> None:
        """With an identifier field, only unseen identifier values are inserted."""
        service.add_collection(
            "prod",
            "orders",
            attributes=[{"key": "number", "type": "string"}, {"key": "qty", "type": "integer"}],
            documents=[{"number": n, "qty": 1} for n in ("a", "b", "c")],
        )
        service.add_collection(
            "staging",
            "orders",
            attributes=[{"key": "number", "type": "string"}, {"key": "qty", "type": "integer"}],
            # Same identifiers, different content
            documents=[{"number": "a", "qty": 9}, {"number": "b", "qty": 9}],
        )
        config = config.model_copy(update={"identifier_fields": {"orders": "number"}})

        result = await clone_database(service, service, config, mode=CloneMode.MISSING_ONLY, sleep=no_wait)

        assert result.documents.success == 1
        assert result.documents.skipped == 2
        assert sorted(d["number"] for d in service.documents("staging", "orders")) == ["a", "b", "c"]

    async def test_does_not_drop_destination(self, service, config, no_wait) -> None:
        """missing-only never deletes destination collections."""
        _seed_books(service)
        service.add_collection("staging", "books", attributes=[{"key": "title", "type": "string"}])
        service.add_collection("staging", "keep_me")

        result = await clone_database(service, service, config, mode=CloneMode.MISSING_ONLY, sleep=no_wait)

        assert result.dropped is None
        assert "keep_me" in service.databases["staging"]["collections"]
        assert service.calls_named("delete_collection") == []


# ==================================================================
# Snapshot lifecycle
# ==================================================================


class TestSnapshotLifecycle:
    """The snapshot is removed on success and kept when the write phase raises."""

    async def test_snapshot_deleted_after_success(self, service, config, no_wait) -> None:
        """A completed run leaves no snapshot behind."""
        _seed_books(service)

        result = await clone_database(service, service, config, mode=CloneMode.FULL, sleep=no_wait)

        assert result.snapshot_path == str(config.snapshot_path)
        assert result.snapshot_deleted is True
        assert not config.snapshot_path.exists()

    async def test_snapshot_kept_when_write_phase_raises(self, service, config, no_wait) -> None:
        """A listing failure during the write phase keeps the snapshot."""
        _seed_books(service)
        # Destination collection does not exist -> indexing it fails

        with pytest.raises(AppwriteError):
            await clone_database(service, service, config, mode=CloneMode.MISSING_ONLY, sleep=no_wait)

        data = json.loads(config.snapshot_path.read_text())
        assert data["sourceId"] == "prod"
        assert data["collections"][0]["documentCount"] == 3

    async def test_document_failures_do_not_keep_snapshot(self, service, config, no_wait) -> None:
        """Per-document failures are recorded; the run still completes."""
        _seed_books(service)
        service.databases["prod"]["collections"]["books"]["documents"].append(
            {"$id": "src-bad", "$collectionId": "books", "subtitle": "no title"}
        )

        result = await clone_database(service, service, config, mode=CloneMode.FULL, sleep=no_wait)

        assert result.documents.success == 3
        assert result.documents.failed == 1
        assert result.documents.errors["books"][0].document_id == "src-bad"
        assert result.has_failures is True
        assert not config.snapshot_path.exists()

    async def test_resume_skips_fetch(self, service, config, no_wait) -> None:
        """A valid snapshot for the same pair is reused instead of fetching."""
        service.add_collection("staging", "books", attributes=[{"key": "title", "type": "string"}])
        write_snapshot(
            Snapshot(
                source_id="prod",
                dest_id="staging",
                collections=[
                    SnapshotCollection.from_documents(
                        "books", "Books", [{"$id": "old-1", "$sequence": 1, "title": "Kept"}]
                    )
                ],
            ),
            config.snapshot_path,
        )

        result = await clone_database(
            service, service, config, mode=CloneMode.DATA_ONLY, resume=True, sleep=no_wait
        )

        assert result.resumed is True
        assert result.documents.success == 1
        assert [c for c in service.list_calls if c[0] == "collections"] == []
        assert service.documents("staging", "books")[0]["title"] == "Kept"
        assert not config.snapshot_path.exists()

    async def test_resume_ignores_snapshot_for_other_pair(self, service, config, no_wait) -> None:
        """A snapshot for different databases is not reused."""
        _seed_books(service)
        service.add_collection("staging", "books", attributes=[{"key": "title", "type": "string"}])
        write_snapshot(
            Snapshot(source_id="other", dest_id="staging", collections=[]),
            config.snapshot_path,
        )

        result = await clone_database(
            service, service, config, mode=CloneMode.DATA_ONLY, resume=True, sleep=no_wait
        )

        assert result.resumed is False
        assert result.documents.success == 3

    async def test_resume_refetches_when_snapshot_unreadable(self, service, config, no_wait) -> None:
        """A snapshot with a malformed value is ignored and the source fetched again."""
        _seed_books(service)
        service.add_collection("staging", "books", attributes=[{"key": "title", "type": "string"}])
        config.snapshot_path.write_text(
            json.dumps({"sourceId": "prod", "destId": "staging", "fetchedAt": "garbage", "collections": []})
        )

        result = await clone_database(
            service, service, config, mode=CloneMode.DATA_ONLY, resume=True, sleep=no_wait
        )

        assert result.resumed is False
        assert result.documents.success == 3
        assert not config.snapshot_path.exists()


# ==================================================================
# Drop, aggregation, reporting
# ==================================================================


class TestDropDestinationCollections:
    """Verify drop records per-collection failures."""

    async def test_delete_failure_recorded(self) -> None:
        """One failing delete does not stop the others."""
        dest = AsyncMock()
        dest.list_collections = AsyncMock(return_value=[{"$id": "a", "name": "A"}, {"$id": "b", "name": "B"}])
        dest.delete_collection = AsyncMock(
            side_effect=[AppwriteError("locked", code=409), None]
        )

        result = await drop_destination_collections(dest, "staging")

        assert result.dropped == ["b"]
        assert result.errors[0].key == "a"
        assert result.errors[0].error == "locked"


class TestCloneDatabase:
    """Verify argument handling, aggregation and progress events."""

    async def test_mode_required(self, service, config) -> None:
        """No mode in arguments or config raises ValueError."""
        with pytest.raises(ValueError, match="No clone mode"):
            await clone_database(service, service, config)

    async def test_export_mode_rejected(self, service, config) -> None:
        """export-csv is not a clone mode for the pipeline."""
        with pytest.raises(ValueError):
            await clone_database(service, service, config, mode=CloneMode.EXPORT_CSV)

    async def test_destructive_mode_rejects_same_database(self, service, config) -> None:
        """Dropping the destination is refused when it is the source."""
        same = config.model_copy(update={"dest_database_id": "prod"})
        service.add_collection("prod", "books", "Books")

        with pytest.raises(ValueError, match="would drop the source"):
            await clone_database(service, service, same, mode=CloneMode.FULL)

        assert service.calls_named("delete_collection") == []

    async def test_mode_taken_from_config(self, service, config, no_wait) -> None:
        """config.mode is used when no mode argument is given."""
        _seed_books(service)
        config = config.model_copy(update={"mode": CloneMode.STRUCTURE_ONLY})

        result = await clone_database(service, service, config, sleep=no_wait)

        assert result.mode is CloneMode.STRUCTURE_ONLY

    async def test_collection_failures_aggregated(self, service, config, no_wait) -> None:
        """Failed collections and attribute errors are keyed by collection."""
        _seed_books(service)
        service.add_collection("prod", "places", attributes=[{"key": "loc", "type": "point"}])

        result = await clone_database(
            service, service, config, mode=CloneMode.STRUCTURE_ONLY, sleep=no_wait
        )

        assert result.collections.success == 1
        assert result.collections.failed == 1
        assert result.collections.errors[0].key == "places"
        assert [e.key for e in result.collections.attribute_errors["places"]] == ["loc"]
        assert result.has_failures is True

    async def test_progress_phases(self, service, config, no_wait) -> None:
        """A full run reports drop, structure, fetch and write phases."""
        _seed_books(service)
        progress = RecordingProgress()

        await clone_database(
            service, service, config, mode=CloneMode.FULL, progress=progress, sleep=no_wait
        )

        assert progress.phases() == ["drop", "structure", "fetch", "write"]
        assert ("start", "write", 3) in progress.events
        assert progress.events.count(("advance", "write")) == 3


class TestCloneResultReport:
    """Verify the human-readable summary."""

    def test_report_lists_document_errors(self) -> None:
        """Document errors are grouped under their collection."""
        stats = DocumentStats(success=2, skipped=1)
        stats.record_failure("books", "b7", "Invalid document structure")
        result = CloneResult(
            source_database_id="prod",
            dest_database_id="staging",
            mode=CloneMode.MISSING_ONLY,
            documents=stats,
        )

        report = result.format_report()

        assert "Documents: 2 created, 1 failed, 1 skipped" in report
        assert "books (1 failed)" in report
        assert "b7: Invalid document structure" in report

    def test_clean_result_has_no_failures(self) -> None:
        """A default result reports no failures."""
        result = CloneResult(
            source_database_id="prod", dest_database_id="staging", mode=CloneMode.FULL
        )
        assert result.has_failures is False
