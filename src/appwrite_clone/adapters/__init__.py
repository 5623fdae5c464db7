"""Remote service adapters package.

Provides the ``DatabaseService`` Protocol and the async Appwrite REST
implementation.

Usage:
    from appwrite_clone.adapters import DatabaseService, AsyncAppwriteAdapter
"""

from appwrite_clone.adapters.appwrite import AppwriteError, AsyncAppwriteAdapter, unique_id
from appwrite_clone.adapters.base import DatabaseService

__all__ = [
    "DatabaseService",
    "AsyncAppwriteAdapter",
    "AppwriteError",
    "unique_id",
]
