"""Adapter factory and database resolution.

Usage:
    from appwrite_clone.factory import create_adapter, resolve_databases

    adapter = create_adapter(config)
    try:
        source_info, dest_info = await resolve_databases(adapter, config, mode)
    finally:
        await adapter.close()
"""

import logging

from pydantic import BaseModel

from appwrite_clone.adapters.appwrite import AppwriteError, AsyncAppwriteAdapter
from appwrite_clone.adapters.base import DatabaseService
from appwrite_clone.config.models import CloneConfig, CloneMode

logger = logging.getLogger(__name__)


# ============================================================================
# Errors and Models
# ============================================================================


class DatabaseNotFoundError(Exception):
    """Raised when the source or destination database id does not resolve."""

    def __init__(self, side: str, database_id: str) -> None:
        self.side = side
        self.database_id = database_id
        super().__init__(f"{side.capitalize()} database '{database_id}' not found")


class DatabaseInfo(BaseModel):
    """Existence and display name of one database.

    Example:
        >>> DatabaseInfo(exists=False, id="staging").label
        'staging'
    """

    exists: bool
    id: str
    name: str | None = None

    @property
    def label(self) -> str:
        return f"{self.name} ({self.id})" if self.name else self.id


# ============================================================================
# Factory
# ============================================================================


def create_adapter(config: CloneConfig) -> AsyncAppwriteAdapter:
    """Build the Appwrite REST adapter for a configuration.

    Source and destination live in the same project, so one adapter
    serves both sides.
    """
    return AsyncAppwriteAdapter(
        endpoint=config.endpoint,
        project_id=config.project_id,
        api_key=config.api_key.get_secret_value(),
    )


async def get_database_info(service: DatabaseService, database_id: str) -> DatabaseInfo:
    """Look up a database by id.

    Returns:
        ``DatabaseInfo`` with ``exists=False`` when the service answers 404.

    Raises:
        AppwriteError: Any error other than not-found.
    """
    try:
        database = await service.get_database(database_id)
    except AppwriteError as e:
        if e.is_not_found:
            logger.debug("Database %s not found", database_id)
            return DatabaseInfo(exists=False, id=database_id)
        raise

    return DatabaseInfo(
        exists=True,
        id=database.get("$id", database_id),
        name=database.get("name"),
    )


async def resolve_databases(
    service: DatabaseService,
    config: CloneConfig,
    mode: CloneMode | None = None,
) -> tuple[DatabaseInfo, DatabaseInfo]:
    """Check that the configured databases exist.

    The destination is only required when the mode writes to it; with no
    mode known yet, it is required.

    Returns:
        ``(source_info, dest_info)``

    Raises:
        DatabaseNotFoundError: If a required database does not exist.
    """
    mode = mode or config.mode

    source_info = await get_database_info(service, config.source_database_id)
    if not source_info.exists:
        raise DatabaseNotFoundError("source", config.source_database_id)

    dest_info = await get_database_info(service, config.dest_database_id)
    if not dest_info.exists and (mode is None or mode.requires_destination):
        raise DatabaseNotFoundError("destination", config.dest_database_id)

    return source_info, dest_info
