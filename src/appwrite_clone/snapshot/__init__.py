"""Durable snapshot of fetched source documents.

Usage:
    from appwrite_clone.snapshot import Snapshot, SnapshotCollection
    from appwrite_clone.snapshot import write_snapshot, read_snapshot, delete_snapshot
"""

from appwrite_clone.snapshot.models import Snapshot, SnapshotCollection
from appwrite_clone.snapshot.store import (
    delete_snapshot,
    read_snapshot,
    validate_snapshot,
    write_snapshot,
)

__all__ = [
    "Snapshot",
    "SnapshotCollection",
    "write_snapshot",
    "read_snapshot",
    "delete_snapshot",
    "validate_snapshot",
]
