"""Shared fixtures: an in-memory Appwrite database service and a no-wait sleep."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from appwrite_clone.adapters.appwrite import AppwriteError
from appwrite_clone.config.models import CloneConfig, PollSettings


def _not_found(what: str) -> AppwriteError:
    return AppwriteError(f"{what} not found", code=404, type="not_found")


class FakeAppwrite:
    """In-memory stand-in for the Appwrite Databases API.

    Models the behaviour the clone pipeline depends on:
    - created attributes and indexes report ``processing`` for
      ``processing_checks`` status listings before turning ``available``;
    - an index over an attribute that is not yet available is rejected;
    - a two-way relationship auto-creates the ``child`` side on the
      related collection;
    - documents carrying ``$`` keys or unknown attributes are rejected;
    - listings honour ``limit`` and ``cursor_after``.
    """

    def __init__(self, processing_checks: int = 1) -> None:
        self.processing_checks = processing_checks
        self.databases: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple] = []
        self.list_calls: list[tuple] = []
        self._pending: dict[tuple, int] = {}
        self._sequence = 0

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_database(self, database_id: str, name: str | None = None) -> None:
        self.databases[database_id] = {
            "$id": database_id,
            "name": name or database_id.title(),
            "collections": {},
        }

    def add_collection(
        self,
        database_id: str,
        collection_id: str,
        name: str | None = None,
        attributes: list[dict] | None = None,
        indexes: list[dict] | None = None,
        documents: list[dict] | None = None,
    ) -> None:
        self.databases[database_id]["collections"][collection_id] = {
            "meta": {
                "$id": collection_id,
                "name": name or collection_id.title(),
                "$permissions": [],
                "documentSecurity": False,
                "enabled": True,
            },
            "attributes": [
                {"status": "available", "required": False, "array": False, **a}
                for a in (attributes or [])
            ],
            "indexes": [
                {"status": "available", "orders": [], **i} for i in (indexes or [])
            ],
            "documents": [],
        }
        for document in documents or []:
            self._store_document(database_id, collection_id, document.get("$id"), document)

    def documents(self, database_id: str, collection_id: str) -> list[dict]:
        return self._collection(database_id, collection_id)["documents"]

    def attribute(self, database_id: str, collection_id: str, key: str) -> dict | None:
        for item in self._collection(database_id, collection_id)["attributes"]:
            if item["key"] == key:
                return item
        return None

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _database(self, database_id: str) -> dict[str, Any]:
        if database_id not in self.databases:
            raise _not_found(f"Database {database_id}")
        return self.databases[database_id]

    def _collection(self, database_id: str, collection_id: str) -> dict[str, Any]:
        collections = self._database(database_id)["collections"]
        if collection_id not in collections:
            raise _not_found(f"Collection {collection_id}")
        return collections[collection_id]

    @staticmethod
    def _page(items: list[dict], field: str, limit: int, cursor_after: str | None) -> list[dict]:
        start = 0
        if cursor_after is not None:
            keys = [item[field] for item in items]
            start = keys.index(cursor_after) + 1
        return [dict(item) for item in items[start:start + limit]]

    def _advance_statuses(self, kind: str, database_id: str, collection_id: str, items: list[dict]) -> None:
        for item in items:
            token = (kind, database_id, collection_id, item["key"])
            if token not in self._pending:
                continue
            if self._pending[token] > 0:
                self._pending[token] -= 1
            else:
                item["status"] = "available"
                del self._pending[token]

    def _add_attribute(self, database_id: str, collection_id: str, attribute: dict) -> dict:
        collection = self._collection(database_id, collection_id)
        if any(a["key"] == attribute["key"] for a in collection["attributes"]):
            raise AppwriteError("Attribute already exists", code=409, type="attribute_already_exists")

        status = "processing" if self.processing_checks else "available"
        stored = {"status": status, "error": "", **attribute}
        collection["attributes"].append(stored)
        if self.processing_checks:
            self._pending[("attr", database_id, collection_id, attribute["key"])] = self.processing_checks
        return stored

    def _store_document(self, database_id: str, collection_id: str, document_id: str | None, data: dict) -> dict:
        self._sequence += 1
        now = datetime.now(timezone.utc).isoformat()
        stored = {
            **{k: v for k, v in data.items() if not k.startswith("$")},
            "$id": document_id or f"doc{self._sequence}",
            "$collectionId": collection_id,
            "$databaseId": database_id,
            "$createdAt": now,
            "$updatedAt": now,
            "$permissions": [],
            "$sequence": self._sequence,
        }
        self._collection(database_id, collection_id)["documents"].append(stored)
        return stored

    # ------------------------------------------------------------------
    # DatabaseService protocol
    # ------------------------------------------------------------------

    async def get_database(self, database_id: str) -> dict:
        database = self._database(database_id)
        return {"$id": database["$id"], "name": database["name"]}

    async def list_collections(self, database_id, limit=100, cursor_after=None):
        self.list_calls.append(("collections", database_id, limit, cursor_after))
        metas = [c["meta"] for c in self._database(database_id)["collections"].values()]
        return self._page(metas, "$id", limit, cursor_after)

    async def list_attributes(self, database_id, collection_id, limit=100, cursor_after=None):
        self.list_calls.append(("attributes", collection_id, limit, cursor_after))
        items = self._collection(database_id, collection_id)["attributes"]
        self._advance_statuses("attr", database_id, collection_id, items)
        return self._page(items, "key", limit, cursor_after)

    async def list_indexes(self, database_id, collection_id, limit=100, cursor_after=None):
        self.list_calls.append(("indexes", collection_id, limit, cursor_after))
        items = self._collection(database_id, collection_id)["indexes"]
        self._advance_statuses("index", database_id, collection_id, items)
        return self._page(items, "key", limit, cursor_after)

    async def list_documents(self, database_id, collection_id, limit=100, cursor_after=None):
        self.list_calls.append(("documents", collection_id, limit, cursor_after))
        items = self._collection(database_id, collection_id)["documents"]
        return self._page(items, "$id", limit, cursor_after)

    async def create_collection(
        self, database_id, collection_id, name, permissions=None,
        document_security=False, enabled=True,
    ):
        self.calls.append(("create_collection", database_id, collection_id))
        collections = self._database(database_id)["collections"]
        if collection_id in collections:
            raise AppwriteError(
                "Collection with the requested ID already exists",
                code=409,
                type="collection_already_exists",
            )
        self.add_collection(database_id, collection_id, name)
        meta = collections[collection_id]["meta"]
        meta["$permissions"] = list(permissions or [])
        meta["documentSecurity"] = document_security
        meta["enabled"] = enabled
        return dict(meta)

    async def delete_collection(self, database_id, collection_id):
        self.calls.append(("delete_collection", database_id, collection_id))
        self._collection(database_id, collection_id)
        del self.databases[database_id]["collections"][collection_id]

    def _simple_attribute(self, type_, database_id, collection_id, key, required, default, array, **extra):
        self.calls.append((f"create_{type_}_attribute", database_id, collection_id, key))
        return self._add_attribute(
            database_id,
            collection_id,
            {"key": key, "type": type_, "required": required, "default": default, "array": array, **extra},
        )

    async def create_string_attribute(self, database_id, collection_id, key, size, required, default=None, array=False):
        return self._simple_attribute("string", database_id, collection_id, key, required, default, array, size=size)

    async def create_integer_attribute(self, database_id, collection_id, key, required, min=None, max=None, default=None, array=False):
        return self._simple_attribute("integer", database_id, collection_id, key, required, default, array, min=min, max=max)

    async def create_float_attribute(self, database_id, collection_id, key, required, min=None, max=None, default=None, array=False):
        return self._simple_attribute("double", database_id, collection_id, key, required, default, array, min=min, max=max)

    async def create_boolean_attribute(self, database_id, collection_id, key, required, default=None, array=False):
        return self._simple_attribute("boolean", database_id, collection_id, key, required, default, array)

    async def create_datetime_attribute(self, database_id, collection_id, key, required, default=None, array=False):
        return self._simple_attribute("datetime", database_id, collection_id, key, required, default, array)

    async def create_email_attribute(self, database_id, collection_id, key, required, default=None, array=False):
        return self._simple_attribute("email", database_id, collection_id, key, required, default, array)

    async def create_ip_attribute(self, database_id, collection_id, key, required, default=None, array=False):
        return self._simple_attribute("ip", database_id, collection_id, key, required, default, array)

    async def create_url_attribute(self, database_id, collection_id, key, required, default=None, array=False):
        return self._simple_attribute("url", database_id, collection_id, key, required, default, array)

    async def create_enum_attribute(self, database_id, collection_id, key, elements, required, default=None, array=False):
        return self._simple_attribute("enum", database_id, collection_id, key, required, default, array, elements=elements)

    async def create_relationship_attribute(
        self, database_id, collection_id, related_collection_id, relation_type,
        two_way=False, key=None, two_way_key=None, on_delete="restrict",
    ):
        self.calls.append(("create_relationship_attribute", database_id, collection_id, key))
        self._collection(database_id, related_collection_id)
        descriptor = {
            "type": "relationship",
            "required": False,
            "array": False,
            "relatedCollection": related_collection_id,
            "relationType": relation_type,
            "twoWay": two_way,
            "onDelete": on_delete,
        }
        parent = self._add_attribute(
            database_id,
            collection_id,
            {**descriptor, "key": key, "twoWayKey": two_way_key, "side": "parent"},
        )
        if two_way:
            self._add_attribute(
                database_id,
                related_collection_id,
                {
                    **descriptor,
                    "key": two_way_key,
                    "relatedCollection": collection_id,
                    "twoWayKey": key,
                    "side": "child",
                },
            )
        return parent

    async def create_index(self, database_id, collection_id, key, type, attributes, orders=None):
        self.calls.append(("create_index", database_id, collection_id, key))
        collection = self._collection(database_id, collection_id)
        statuses = {a["key"]: a["status"] for a in collection["attributes"]}
        for attribute in attributes:
            if statuses.get(attribute) != "available":
                raise AppwriteError(
                    f"Attribute not available: {attribute}",
                    code=400,
                    type="attribute_not_available",
                )

        status = "processing" if self.processing_checks else "available"
        stored = {
            "key": key,
            "type": type,
            "status": status,
            "error": "",
            "attributes": list(attributes),
            "orders": list(orders or []),
        }
        collection["indexes"].append(stored)
        if self.processing_checks:
            self._pending[("index", database_id, collection_id, key)] = self.processing_checks
        return stored

    async def create_document(self, database_id, collection_id, document_id, data):
        self.calls.append(("create_document", database_id, collection_id, document_id))
        collection = self._collection(database_id, collection_id)

        reserved = [k for k in data if k.startswith("$")]
        if reserved:
            raise AppwriteError(
                f"Invalid document structure: Unknown attribute: \"{reserved[0]}\"",
                code=400,
                type="document_invalid_structure",
            )

        attributes = {a["key"]: a for a in collection["attributes"]}
        if attributes:
            unknown = [k for k in data if k not in attributes]
            if unknown:
                raise AppwriteError(
                    f"Invalid document structure: Unknown attribute: \"{unknown[0]}\"",
                    code=400,
                    type="document_invalid_structure",
                )
            for attribute in attributes.values():
                if attribute["required"] and data.get(attribute["key"]) is None:
                    raise AppwriteError(
                        f"Invalid document structure: Missing required attribute \"{attribute['key']}\"",
                        code=400,
                        type="document_invalid_structure",
                    )

        return self._store_document(database_id, collection_id, document_id, data)

    async def close(self) -> None:
        pass


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------


class NoWait:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def no_wait() -> NoWait:
    return NoWait()


@pytest.fixture
def service() -> FakeAppwrite:
    """Fake service holding an empty ``prod`` and ``staging`` database."""
    fake = FakeAppwrite()
    fake.add_database("prod", "Production")
    fake.add_database("staging", "Staging")
    return fake


@pytest.fixture
def config(tmp_path: Path) -> CloneConfig:
    return CloneConfig(
        endpoint="https://appwrite.test/v1",
        project_id="proj",
        api_key="secret-key",
        source_database_id="prod",
        dest_database_id="staging",
        batch_size=2,
        snapshot_path=tmp_path / "cache.json",
        export_dir=tmp_path / "csv-export",
        poll=PollSettings(interval_seconds=0, attribute_max_attempts=5, index_max_attempts=5),
    )
