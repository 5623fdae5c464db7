"""Async Appwrite database adapter.

Provides ``AsyncAppwriteAdapter``, an async implementation of the
``DatabaseService`` protocol over the Appwrite Databases REST API using
``httpx.AsyncClient``.

Usage:
    from appwrite_clone.adapters.appwrite import AsyncAppwriteAdapter

    adapter = AsyncAppwriteAdapter(
        "https://cloud.appwrite.io/v1",
        project_id="my-project",
        api_key="secret",
    )

    page = await adapter.list_collections("main", limit=100)
    await adapter.close()
"""

import json
import uuid
from typing import Any

import httpx

DEFAULT_TIMEOUT = 30.0


class AppwriteError(Exception):
    """Error response returned by the Appwrite API.

    Attributes:
        message: Human-readable message from the service.
        code: HTTP status code of the response.
        type: Appwrite error type (e.g. ``collection_already_exists``).
    """

    def __init__(self, message: str, code: int = 0, type: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.type = type

    @property
    def is_not_found(self) -> bool:
        return self.code == 404


def unique_id() -> str:
    """Generate a fresh document identifier.

    Appwrite accepts up to 36 characters from ``[a-zA-Z0-9._-]`` that do
    not start with a special character; 20 hex characters always qualify.
    """
    return uuid.uuid4().hex[:20]


def _query(method: str, *values: Any) -> str:
    """Serialize a single Appwrite query in the JSON query syntax."""
    return json.dumps({"method": method, "values": list(values)}, separators=(",", ":"))


def _page_queries(limit: int, cursor_after: str | None) -> list[str]:
    queries = [_query("limit", limit)]
    if cursor_after is not None:
        queries.append(_query("cursorAfter", cursor_after))
    return queries


def _compact(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop ``None`` values so optional parameters fall back to server defaults."""
    return {k: v for k, v in payload.items() if v is not None}


class AsyncAppwriteAdapter:
    """Async Appwrite implementation of the ``DatabaseService`` protocol.

    Authenticates with a server API key.  Every non-2xx response is turned
    into an ``AppwriteError`` carrying the service's message, status code
    and error type.

    Args:
        endpoint: API endpoint including the version prefix
            (e.g. ``https://cloud.appwrite.io/v1``).
        project_id: Appwrite project id.
        api_key: Server API key with databases scopes.
        timeout: Per-request timeout in seconds.
        transport: Optional ``httpx`` transport (tests pass
            ``httpx.MockTransport``).

    Example:
        async with AsyncAppwriteAdapter(endpoint, "proj", "key") as adapter:
            info = await adapter.get_database("main")
    """

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=endpoint.rstrip("/"),
            headers={
                "X-Appwrite-Project": project_id,
                "X-Appwrite-Key": api_key,
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "AsyncAppwriteAdapter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict:
        response = await self._client.request(method, path, params=params, json=body)

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            raise AppwriteError(
                payload.get("message") or response.text or response.reason_phrase,
                code=payload.get("code") or response.status_code,
                type=payload.get("type", ""),
            )

        # DELETE returns 204 No Content
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    async def _list(
        self,
        path: str,
        items_key: str,
        limit: int,
        cursor_after: str | None,
    ) -> list[dict]:
        payload = await self._request(
            "GET", path, params={"queries[]": _page_queries(limit, cursor_after)}
        )
        return payload.get(items_key, [])

    async def _create_attribute(
        self,
        database_id: str,
        collection_id: str,
        kind: str,
        payload: dict[str, Any],
    ) -> dict:
        path = f"/databases/{database_id}/collections/{collection_id}/attributes/{kind}"
        return await self._request("POST", path, body=_compact(payload))

    # ------------------------------------------------------------------
    # Databases and collections
    # ------------------------------------------------------------------

    async def get_database(self, database_id: str) -> dict:
        return await self._request("GET", f"/databases/{database_id}")

    async def list_collections(
        self,
        database_id: str,
        limit: int = 100,
        cursor_after: str | None = None,
    ) -> list[dict]:
        return await self._list(
            f"/databases/{database_id}/collections", "collections", limit, cursor_after
        )

    async def create_collection(
        self,
        database_id: str,
        collection_id: str,
        name: str,
        permissions: list[str] | None = None,
        document_security: bool = False,
        enabled: bool = True,
    ) -> dict:
        return await self._request(
            "POST",
            f"/databases/{database_id}/collections",
            body={
                "collectionId": collection_id,
                "name": name,
                "permissions": permissions or [],
                "documentSecurity": document_security,
                "enabled": enabled,
            },
        )

    async def delete_collection(self, database_id: str, collection_id: str) -> None:
        await self._request(
            "DELETE", f"/databases/{database_id}/collections/{collection_id}"
        )

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    async def list_attributes(
        self,
        database_id: str,
        collection_id: str,
        limit: int = 100,
        cursor_after: str | None = None,
    ) -> list[dict]:
        return await self._list(
            f"/databases/{database_id}/collections/{collection_id}/attributes",
            "attributes",
            limit,
            cursor_after,
        )

    async def create_string_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        size: int,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict:
        return await self._create_attribute(
            database_id,
            collection_id,
            "string",
            {"key": key, "size": size, "required": required, "default": default, "array": array},
        )

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
    ) -> dict:
        return await self._create_attribute(
            database_id,
            collection_id,
            "integer",
            {
                "key": key,
                "required": required,
                "min": min,
                "max": max,
                "default": default,
                "array": array,
            },
        )

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
    ) -> dict:
        return await self._create_attribute(
            database_id,
            collection_id,
            "float",
            {
                "key": key,
                "required": required,
                "min": min,
                "max": max,
                "default": default,
                "array": array,
            },
        )

    async def create_boolean_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict:
        return await self._create_attribute(
            database_id,
            collection_id,
            "boolean",
            {"key": key, "required": required, "default": default, "array": array},
        )

    async def create_datetime_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict:
        return await self._create_attribute(
            database_id,
            collection_id,
            "datetime",
            {"key": key, "required": required, "default": default, "array": array},
        )

    async def create_email_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict:
        return await self._create_attribute(
            database_id,
            collection_id,
            "email",
            {"key": key, "required": required, "default": default, "array": array},
        )

    async def create_ip_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict:
        return await self._create_attribute(
            database_id,
            collection_id,
            "ip",
            {"key": key, "required": required, "default": default, "array": array},
        )

    async def create_url_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict:
        return await self._create_attribute(
            database_id,
            collection_id,
            "url",
            {"key": key, "required": required, "default": default, "array": array},
        )

    async def create_enum_attribute(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        elements: list[str],
        required: bool,
        default: Any = None,
        array: bool = False,
    ) -> dict:
        return await self._create_attribute(
            database_id,
            collection_id,
            "enum",
            {
                "key": key,
                "elements": elements,
                "required": required,
                "default": default,
                "array": array,
            },
        )

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
        return await self._create_attribute(
            database_id,
            collection_id,
            "relationship",
            {
                "relatedCollectionId": related_collection_id,
                "type": relation_type,
                "twoWay": two_way,
                "key": key,
                "twoWayKey": two_way_key,
                "onDelete": on_delete,
            },
        )

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    async def list_indexes(
        self,
        database_id: str,
        collection_id: str,
        limit: int = 100,
        cursor_after: str | None = None,
    ) -> list[dict]:
        return await self._list(
            f"/databases/{database_id}/collections/{collection_id}/indexes",
            "indexes",
            limit,
            cursor_after,
        )

    async def create_index(
        self,
        database_id: str,
        collection_id: str,
        key: str,
        type: str,
        attributes: list[str],
        orders: list[str] | None = None,
    ) -> dict:
        return await self._request(
            "POST",
            f"/databases/{database_id}/collections/{collection_id}/indexes",
            body={
                "key": key,
                "type": type,
                "attributes": attributes,
                "orders": orders or [],
            },
        )

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def list_documents(
        self,
        database_id: str,
        collection_id: str,
        limit: int = 100,
        cursor_after: str | None = None,
    ) -> list[dict]:
        return await self._list(
            f"/databases/{database_id}/collections/{collection_id}/documents",
            "documents",
            limit,
            cursor_after,
        )

    async def create_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        data: dict,
    ) -> dict:
        return await self._request(
            "POST",
            f"/databases/{database_id}/collections/{collection_id}/documents",
            body={"documentId": document_id, "data": data},
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
