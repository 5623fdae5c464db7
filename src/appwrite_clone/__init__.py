"""appwrite-clone: Clone Appwrite databases -- schema, documents, or both.

Replicates collections, attributes and indexes from a source database into
a destination database, copies documents through a resumable on-disk
snapshot, supports an incremental "missing-only" sync and CSV export.

Usage:
    from appwrite_clone import load_clone_config, create_adapter, clone_database
    from appwrite_clone import CloneMode, sanitize_document
"""

__version__ = "0.1.0"

# Adapters
from appwrite_clone.adapters.appwrite import AppwriteError, AsyncAppwriteAdapter, unique_id
from appwrite_clone.adapters.base import DatabaseService

# Config
from appwrite_clone.config.loader import ConfigurationError, load_clone_config
from appwrite_clone.config.models import CloneConfig, CloneMode, PollSettings

# Factory
from appwrite_clone.factory import (
    DatabaseInfo,
    DatabaseNotFoundError,
    create_adapter,
    get_database_info,
    resolve_databases,
)

# Pipeline
from appwrite_clone.data.diff import build_existing_record_index, select_missing
from appwrite_clone.data.sanitizer import METADATA_FIELDS, sanitize_document
from appwrite_clone.export.csv_export import export_database_to_csv
from appwrite_clone.orchestrator import CloneResult, clone_database, drop_destination_collections
from appwrite_clone.pagination import fetch_all
from appwrite_clone.schema.replicator import replicate_collection_structure
from appwrite_clone.snapshot.models import Snapshot

__all__ = [
    # Adapters
    "DatabaseService",
    "AsyncAppwriteAdapter",
    "AppwriteError",
    "unique_id",
    # Config
    "load_clone_config",
    "ConfigurationError",
    "CloneConfig",
    "CloneMode",
    "PollSettings",
    # Factory
    "create_adapter",
    "get_database_info",
    "resolve_databases",
    "DatabaseInfo",
    "DatabaseNotFoundError",
    # Pipeline
    "fetch_all",
    "sanitize_document",
    "METADATA_FIELDS",
    "build_existing_record_index",
    "select_missing",
    "replicate_collection_structure",
    "Snapshot",
    "clone_database",
    "drop_destination_collections",
    "CloneResult",
    "export_database_to_csv",
]
