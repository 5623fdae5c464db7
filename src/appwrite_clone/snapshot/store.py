"""Snapshot file persistence and validation.

The snapshot decouples the (possibly slow, possibly interrupted) fetch
phase from the write phase.  It is written right after every source
document has been fetched and deleted only after the write phase
finished without raising, so a file left on disk after a crash is the
checkpoint to resume from.

Usage:
    from appwrite_clone.snapshot.store import (
        write_snapshot,
        read_snapshot,
        delete_snapshot,
        validate_snapshot,
    )

    path = write_snapshot(snapshot, ".appwrite-clone-cache.json")
    snapshot = read_snapshot(path)
    report = validate_snapshot(path, source_id="prod", dest_id="staging")
    delete_snapshot(path)
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from appwrite_clone.snapshot.models import Snapshot

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("sourceId", "destId", "fetchedAt", "collections")
REQUIRED_COLLECTION_KEYS = ("collectionId", "collectionName", "documents")


def write_snapshot(snapshot: Snapshot, path: str | Path) -> Path:
    """Write the snapshot as indented JSON, creating parent directories.

    Returns:
        Path of the written file.
    """
    path_obj = Path(path)
    path_obj.parent.mkdir(parents=True, exist_ok=True)

    with open(path_obj, "w", encoding="utf-8") as f:
        json.dump(snapshot.to_json_dict(), f, indent=2, ensure_ascii=False)

    logger.info(
        "Wrote snapshot %s (%d documents)", path_obj, snapshot.total_documents
    )
    return path_obj


def read_snapshot(path: str | Path) -> Snapshot:
    """Load a snapshot file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or not a snapshot.
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid snapshot JSON in {path}: {e}") from e

    try:
        return Snapshot.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid snapshot {path}: {e}") from e


def delete_snapshot(path: str | Path) -> bool:
    """Remove the snapshot file.

    Returns:
        True if a file was deleted, False if there was none.
    """
    path_obj = Path(path)
    if path_obj.exists():
        path_obj.unlink()
        logger.info("Deleted snapshot %s", path_obj)
        return True
    return False


def validate_snapshot(
    path: str | Path,
    source_id: str | None = None,
    dest_id: str | None = None,
) -> dict:
    """Validate snapshot file format and that it belongs to a database pair.

    Reads the local file only -- no remote calls.

    Args:
        path: Snapshot file path.
        source_id: Expected ``sourceId`` (not checked when ``None``).
        dest_id: Expected ``destId`` (not checked when ``None``).

    Returns:
        Dict with ``valid`` (bool), ``errors`` (list[str]) and
        ``warnings`` (list[str]).  A ``documentCount`` that disagrees with
        the stored documents is a warning; everything else is an error.

    Example:
        report = validate_snapshot(".appwrite-clone-cache.json", "prod", "staging")
        if not report["valid"]:
            print(report["errors"])
    """
    errors: list[str] = []
    warnings: list[str] = []

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        errors.append(f"Snapshot file not found: {path}")
        return {"valid": False, "errors": errors, "warnings": warnings}
    except json.JSONDecodeError as e:
        errors.append(f"Invalid JSON: {e}")
        return {"valid": False, "errors": errors, "warnings": warnings}

    if not isinstance(data, dict):
        errors.append("Snapshot root must be an object")
        return {"valid": False, "errors": errors, "warnings": warnings}

    for key in REQUIRED_KEYS:
        if key not in data:
            errors.append(f"Missing required key: {key}")

    if errors:
        return {"valid": False, "errors": errors, "warnings": warnings}

    if source_id is not None and data["sourceId"] != source_id:
        errors.append(
            f"Snapshot source '{data['sourceId']}' does not match '{source_id}'"
        )
    if dest_id is not None and data["destId"] != dest_id:
        errors.append(
            f"Snapshot destination '{data['destId']}' does not match '{dest_id}'"
        )

    collections = data["collections"]
    if not isinstance(collections, list):
        errors.append("'collections' must be a list")
        return {"valid": False, "errors": errors, "warnings": warnings}

    for position, collection in enumerate(collections):
        if not isinstance(collection, dict):
            errors.append(f"Collection #{position} must be an object")
            continue

        missing = [k for k in REQUIRED_COLLECTION_KEYS if k not in collection]
        if missing:
            errors.append(
                f"Collection #{position} missing key(s): {', '.join(missing)}"
            )
            continue

        documents = collection["documents"]
        if not isinstance(documents, list):
            errors.append(f"{collection['collectionId']}: 'documents' must be a list")
            continue

        declared = collection.get("documentCount")
        if declared is not None and declared != len(documents):
            warnings.append(
                f"{collection['collectionId']}: documentCount {declared} "
                f"but {len(documents)} documents stored"
            )

    if not errors:
        try:
            Snapshot.model_validate(data)
        except ValidationError as e:
            for err in e.errors():
                location = ".".join(str(part) for part in err["loc"])
                errors.append(f"Invalid value at {location}: {err['msg']}")

    return {"valid": len(errors) == 0, "errors": errors, "warnings": warnings}
