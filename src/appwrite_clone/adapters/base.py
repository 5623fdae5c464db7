"""Database service protocol definition.

Defines the ``DatabaseService`` Protocol that the clone engine talks to.
All methods are ``async def`` -- the library is async-first, but the
engine only ever has one call outstanding at a time.

Listing methods return the raw item dicts exactly as the service sends
them (``$id``, ``$permissions`` and friends included).  Parsing into
models happens in the engine, not in the adapter.

Usage:
    from appwrite_clone.adapters.base import DatabaseService

    async def do_work(service: DatabaseService) -> None:
        page = await service.list_collections("main", limit=100)
        await service.create_document("main", "books", "abc123", {"title": "Dune"})
        await service.close()
"""

from typing import Any, Protocol


class DatabaseService(Protocol):
    """Remote document database interface used by the clone engine.

    Every ``list_*`` method accepts a page size (``limit``) and an optional
    ``cursor_after`` value (the identifier of the last item of the previous
    page) and returns one page of items.
    """

    async def get_database(self, database_id: str) -> dict:
        """Fetch a database by id.

        Raises:
            Exception: If the database does not exist or the call fails.
        """
        ...

    async def list_collections(
        self,
        database_id: str,
        limit: int = 100,
        cursor_after: str | None = None,
    ) -> list[dict]:
        """List one page of collections in a database."""
        ...

    async def list_attributes(
        self,
        database_id: str,
        collection_id: str,
        limit: int = 100,
        cursor_after: str | None = None,
    ) -> list[dict]:
        """List one page of attributes of a collection."""
        ...

    async def list_indexes(
        self,
        database_id: str,
        collection_id: str,
        limit: int = 100,
        cursor_after: str | None = None,
    ) -> list[dict]:
        """List one page of indexes of a collection."""
        ...

    async def list_documents(
        self,
        database_id: str,
        collection_id: str,
        limit: int = 100,
        cursor_after: str | None = None,
    ) -> list[dict]:
        """List one page of documents of a collection."""
        ...

    async def create_collection(
        self,
        database_id: str,
        collection_id: str,
        name: str,
        permissions: list[str] | None = None,
        document_security: bool = False,
        enabled: bool = True,
    ) -> dict:
        """Create a collection shell (no attributes, no indexes).

        Example:
            await service.create_collection(
                "main", "books", "Books",
                permissions=['read("any")'],
                document_security=True,
            )
        """
        ...

    async def create_string_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        size: int,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict: ...

    async def create_integer_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        min: int | None = None,
        max: int | None = None,
        default: Any = None,
        array: bool = False,
    ) -> dict: ...

    async def create_float_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        min: float | None = None,
        max: float | None = None,
        default: Any = None,
        array: bool = False,
    ) -> dict: ...

    async def create_boolean_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict: ...

    async def create_datetime_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict: ...

    async def create_email_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict: ...

    async def create_ip_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict: ...

    async def create_url_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict: ...

    async def create_enum_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        elements: list[str],
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict: ...

    async def create_relationship_attribute(
        self,
        database_id: str,
        collection_id: str,
        related_collection_id: str,
        relation_type: str,
        two_way: bool = False,
        key: str | None = None,
        two_way_key: str | None = None,
        on_delete: str = "restrict",
    ) -> dict:
        """Create the parent side of a relationship.

        When ``two_way`` is set the service creates the child side in the
        related collection on its own.
        """
        ...

    async def create_index(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        type: str,
        attributes: list[str],
        orders: list[str] | None = None,
    ) -> dict: ...

    async def create_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        data: dict,
    ) -> dict:
        """Create a document and return it as stored by the service.

        Raises:
            Exception: If the service rejects the document.
        """
        ...

    async def delete_collection(self, database_id: str, collection_id: str) -> None: ...

    async def close(self) -> None:
        """Release any network resources held by the service client."""
        ...
