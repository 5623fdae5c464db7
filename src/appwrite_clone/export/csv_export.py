"""CSV export of a source database, one file per collection.

Files are written to ``<export_dir>/<collection name>_<YYYY-MM-DDTHH-MM-SS>.csv``.
Without system fields the files can be re-imported into Appwrite as-is.

Usage:
    from appwrite_clone.export import export_database_to_csv

    result = await export_database_to_csv(adapter, "prod", Path("csv-export"))
    print(f"{result.total_records} records exported")
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from appwrite_clone.adapters.base import DatabaseService
from appwrite_clone.data.sanitizer import METADATA_FIELDS, Document
from appwrite_clone.orchestrator import CloneProgress
from appwrite_clone.pagination import fetch_all_collections, fetch_all_documents
from appwrite_clone.schema.models import Collection

logger = logging.getLogger(__name__)

PHASE_EXPORT = "export"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"


class ExportedFile(BaseModel):
    """One collection's export; ``path`` is None when it had no documents."""

    collection_name: str
    path: Path | None = None
    record_count: int = 0

    @property
    def filename(self) -> str | None:
        return self.path.name if self.path else None


class ExportResult(BaseModel):
    """Result of ``export_database_to_csv()``."""

    export_dir: Path
    collections: list[ExportedFile] = Field(default_factory=list)

    @property
    def total_records(self) -> int:
        return sum(c.record_count for c in self.collections)


def _header_sort_key(key: str) -> tuple[bool, str, str]:
    return (not key.startswith("$"), key.lower(), key)


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def _escape_field(text: str) -> str:
    """Quote a field containing a delimiter, quote or line break, or padded with spaces."""
    if any(c in text for c in ',"\r\n') or text.startswith(" ") or text.endswith(" "):
        return '"' + text.replace('"', '""') + '"'
    return text


def documents_to_csv(documents: list[Document], include_system_fields: bool = False) -> str:
    """Render documents as CSV text.

    The header is the union of all document keys: ``$`` fields first,
    then the rest alphabetically.  Reserved metadata fields are left out
    unless ``include_system_fields`` is set.  Fields holding a delimiter,
    quote or line break, or padded with spaces, are quoted so re-imports
    keep them intact.

    Example:
        >>> documents_to_csv([{"title": "Dune", "tags": ["sf"], "done": True}])
        'done,tags,title\\ntrue,"[""sf""]",Dune'
    """
    if not documents:
        return ""

    keys: set[str] = set()
    for document in documents:
        for key in document:
            if include_system_fields or key not in METADATA_FIELDS:
                keys.add(key)
    headers = sorted(keys, key=_header_sort_key)

    lines = [",".join(_escape_field(key) for key in headers)]
    for document in documents:
        lines.append(",".join(_escape_field(_format_cell(document.get(key))) for key in headers))

    return "\n".join(lines)


def export_collection_to_csv(
    collection_name: str,
    documents: list[Document],
    export_dir: str | Path,
    include_system_fields: bool = False,
    now: datetime | None = None,
) -> ExportedFile:
    """Write one collection's documents to a timestamped CSV file."""
    export_path = Path(export_dir)
    export_path.mkdir(parents=True, exist_ok=True)

    timestamp = (now or datetime.now(timezone.utc)).strftime(TIMESTAMP_FORMAT)
    path = export_path / f"{collection_name}_{timestamp}.csv"
    path.write_text(documents_to_csv(documents, include_system_fields), encoding="utf-8")

    logger.debug("Exported %d record(s) to %s", len(documents), path)
    return ExportedFile(collection_name=collection_name, path=path, record_count=len(documents))


async def export_database_to_csv(
    source: DatabaseService,
    source_database_id: str,
    export_dir: str | Path,
    include_system_fields: bool = False,
    page_size: int = 100,
    progress: CloneProgress | None = None,
) -> ExportResult:
    """Export every collection of a database to CSV.

    Collections without documents are listed in the result with no file.

    Args:
        source: Source service.
        source_database_id: Database to export.
        export_dir: Output directory (created when missing).
        include_system_fields: Keep ``$id``, ``$createdAt`` and the other
            reserved fields.
        page_size: Documents per listing request.
        progress: Optional ``CloneProgress`` receiver (phase ``"export"``).

    Raises:
        Exception: Listing and file errors propagate.
    """
    export_path = Path(export_dir)
    export_path.mkdir(parents=True, exist_ok=True)
    result = ExportResult(export_dir=export_path)

    collections = [
        Collection.model_validate(item)
        for item in await fetch_all_collections(source, source_database_id)
    ]
    logger.info("Exporting %d collection(s) to %s", len(collections), export_path)

    if progress is not None:
        progress.start(PHASE_EXPORT, len(collections))
    for collection in collections:
        documents = await fetch_all_documents(
            source, source_database_id, collection.id, page_size
        )
        if documents:
            exported = export_collection_to_csv(
                collection.name, documents, export_path, include_system_fields
            )
        else:
            exported = ExportedFile(collection_name=collection.name)
        result.collections.append(exported)
        if progress is not None:
            progress.advance(PHASE_EXPORT, collection.name)
    if progress is not None:
        progress.finish(PHASE_EXPORT)

    return result
