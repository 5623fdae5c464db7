"""Cursor-based traversal of paged listing endpoints.

Every listing endpoint of the service returns at most ``limit`` items per
call.  ``fetch_all`` walks an endpoint forward with ``cursorAfter`` until
a short page comes back.

Usage:
    from appwrite_clone.pagination import fetch_all, fetch_all_documents

    collections = await fetch_all(
        lambda limit, cursor: service.list_collections("main", limit, cursor),
        cursor_field="$id",
    )
    documents = await fetch_all_documents(service, "main", "books", page_size=500)
"""

import logging
from collections.abc import Awaitable, Callable

from appwrite_clone.adapters.base import DatabaseService

logger = logging.getLogger(__name__)

SCHEMA_PAGE_SIZE = 100

ListPage = Callable[[int, str | None], Awaitable[list[dict]]]


async def fetch_all(
    list_page: ListPage,
    cursor_field: str,
    page_size: int = SCHEMA_PAGE_SIZE,
) -> list[dict]:
    """Fetch every item of a paged listing, in service order.

    Requests pages of ``page_size``.  A page shorter than ``page_size``
    ends the traversal; otherwise the next request continues after the
    ``cursor_field`` value of the page's last item.  When the item count
    is an exact multiple of ``page_size`` the final request returns an
    empty page.

    Any error raised by ``list_page`` propagates immediately -- no
    partial result is returned and nothing is retried.

    Args:
        list_page: Async callable ``(limit, cursor_after) -> items``.
        cursor_field: Item key used as the cursor (``"$id"`` for
            collections and documents, ``"key"`` for attributes and indexes).
        page_size: Items requested per call.

    Returns:
        All items, each exactly once, in the order the service returned them.

    Raises:
        ValueError: If ``page_size`` is not positive.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    items: list[dict] = []
    cursor: str | None = None

    while True:
        page = await list_page(page_size, cursor)
        items.extend(page)

        if len(page) < page_size:
            break
        cursor = page[-1][cursor_field]

    return items


async def fetch_all_collections(
    service: DatabaseService,
    database_id: str,
) -> list[dict]:
    """All collections of a database."""
    collections = await fetch_all(
        lambda limit, cursor: service.list_collections(database_id, limit, cursor),
        cursor_field="$id",
    )
    logger.debug("Fetched %d collections from %s", len(collections), database_id)
    return collections


async def fetch_all_attributes(
    service: DatabaseService,
    database_id: str,
    collection_id: str,
) -> list[dict]:
    """All attributes of a collection, in creation order."""
    return await fetch_all(
        lambda limit, cursor: service.list_attributes(
            database_id, collection_id, limit, cursor
        ),
        cursor_field="key",
    )


async def fetch_all_indexes(
    service: DatabaseService,
    database_id: str,
    collection_id: str,
) -> list[dict]:
    """All indexes of a collection."""
    return await fetch_all(
        lambda limit, cursor: service.list_indexes(
            database_id, collection_id, limit, cursor
        ),
        cursor_field="key",
    )


async def fetch_all_documents(
    service: DatabaseService,
    database_id: str,
    collection_id: str,
    page_size: int = 100,
) -> list[dict]:
    """All documents of a collection, fetched ``page_size`` at a time."""
    documents = await fetch_all(
        lambda limit, cursor: service.list_documents(
            database_id, collection_id, limit, cursor
        ),
        cursor_field="$id",
        page_size=page_size,
    )
    logger.debug(
        "Fetched %d documents from %s/%s", len(documents), database_id, collection_id
    )
    return documents
