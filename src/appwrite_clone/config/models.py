"""Pydantic models for clone configuration."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, SecretStr

DEFAULT_SNAPSHOT_PATH = Path(".appwrite-clone-cache.json")
DEFAULT_EXPORT_DIR = Path("csv-export")


# ============================================================================
# Clone Mode
# ============================================================================


class CloneMode(str, Enum):
    """What a run replicates.

    Example:
        >>> CloneMode("missing-only").incremental
        True
        >>> CloneMode.STRUCTURE_ONLY.replicate_data
        False
    """

    FULL = "full"
    STRUCTURE_ONLY = "structure-only"
    DATA_ONLY = "data-only"
    MISSING_ONLY = "missing-only"
    EXPORT_CSV = "export-csv"

    @property
    def replicate_structure(self) -> bool:
        return self in (CloneMode.FULL, CloneMode.STRUCTURE_ONLY)

    @property
    def replicate_data(self) -> bool:
        return self in (CloneMode.FULL, CloneMode.DATA_ONLY)

    @property
    def incremental(self) -> bool:
        return self is CloneMode.MISSING_ONLY

    @property
    def requires_destination(self) -> bool:
        return self is not CloneMode.EXPORT_CSV

    @property
    def is_destructive(self) -> bool:
        """True if the run deletes every destination collection first."""
        return self.replicate_structure and not self.incremental

    @property
    def description(self) -> str:
        return _MODE_DESCRIPTIONS[self]


_MODE_DESCRIPTIONS = {
    CloneMode.FULL: "Clone collections, attributes, indexes, and all documents",
    CloneMode.STRUCTURE_ONLY: "Clone only collections, attributes, and indexes (no documents)",
    CloneMode.DATA_ONLY: "Clone only documents (destination collections must exist)",
    CloneMode.MISSING_ONLY: "Only add documents that do not exist in destination (incremental sync)",
    CloneMode.EXPORT_CSV: "Export all source documents to CSV files (one file per collection)",
}


# ============================================================================
# Configuration Models
# ============================================================================


class PollSettings(BaseModel):
    """Readiness polling bounds for created attributes and indexes."""

    model_config = ConfigDict(frozen=True)

    interval_seconds: float = Field(default=1.0, ge=0)
    attribute_max_attempts: int = Field(default=30, gt=0)
    index_max_attempts: int = Field(default=60, gt=0)


class CloneConfig(BaseModel):
    """Complete, immutable configuration for one clone run.

    Built once up front by ``load_clone_config()`` and passed explicitly
    to everything that needs it.

    Example:
        >>> config = CloneConfig(
        ...     endpoint="https://cloud.appwrite.io/v1",
        ...     project_id="proj",
        ...     api_key="key",
        ...     source_database_id="prod",
        ...     dest_database_id="staging",
        ... )
        >>> config.batch_size
        100
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str
    project_id: str
    api_key: SecretStr
    source_database_id: str
    dest_database_id: str
    batch_size: int = Field(default=100, gt=0)
    mode: CloneMode | None = None  # None = ask interactively
    snapshot_path: Path = DEFAULT_SNAPSHOT_PATH
    export_dir: Path = DEFAULT_EXPORT_DIR
    identifier_fields: dict[str, str] = Field(default_factory=dict)
    poll: PollSettings = Field(default_factory=PollSettings)

    def identifier_field_for(self, collection_id: str) -> str | None:
        """Unique identifier field configured for a collection, if any."""
        return self.identifier_fields.get(collection_id)
