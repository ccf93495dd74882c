"""MongoDB implementation of document database."""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from video_orchestrator.commons.infrastructure.blob.base import HealthStatus
from video_orchestrator.commons.infrastructure.documentdb.base import (
    DocumentConflictError,
    DocumentDBBase,
    DocumentDBUnavailableError,
)


def _to_mongo(document: dict[str, Any]) -> dict[str, Any]:
    """Map the domain ``id`` key onto MongoDB's ``_id``."""
    doc = document.copy()
    if "id" in doc:
        doc["_id"] = doc.pop("id")
    return doc


def _from_mongo(document: dict[str, Any]) -> dict[str, Any]:
    doc = dict(document)
    doc["id"] = str(doc.pop("_id"))
    return doc


@contextmanager
def _translate_errors(collection: str, operation: str) -> Iterator[None]:
    try:
        yield
    except DuplicateKeyError as e:
        raise DocumentConflictError(collection, str(e.details or e)) from e
    except ConnectionFailure as e:
        raise DocumentDBUnavailableError(f"{operation} on {collection}", str(e)) from e


class MongoDBDocumentDB(DocumentDBBase):
    """MongoDB implementation of document database.

    Uses Motor for async operations. Domain documents keep their UUID in
    ``id``, stored as ``_id``.
    """

    def __init__(
        self,
        connection_string: str,
        database_name: str,
        server_selection_timeout_ms: int = 5000,
    ) -> None:
        """Initialize MongoDB client.

        Args:
            connection_string: MongoDB connection URI.
            database_name: Name of the database to use.
            server_selection_timeout_ms: How long an operation waits for a
                reachable server before failing.
        """
        self._client: AsyncIOMotorClient[dict[str, Any]] = AsyncIOMotorClient(
            connection_string,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
            tz_aware=True,
        )
        self._db: AsyncIOMotorDatabase[dict[str, Any]] = self._client[database_name]
        self._database_name = database_name

    async def insert(
        self,
        collection: str,
        document: dict[str, Any],
    ) -> str:
        with _translate_errors(collection, "insert"):
            result = await self._db[collection].insert_one(_to_mongo(document))
        return str(result.inserted_id)

    async def find_by_id(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        with _translate_errors(collection, "find_by_id"):
            doc = await self._db[collection].find_one({"_id": document_id})
        return _from_mongo(doc) if doc else None

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[dict[str, Any]]:
        cursor = self._db[collection].find(_to_mongo(filters))
        if sort:
            cursor = cursor.sort([("_id" if f == "id" else f, d) for f, d in sort])
        cursor = cursor.skip(skip).limit(limit)

        with _translate_errors(collection, "find"):
            return [_from_mongo(doc) async for doc in cursor]

    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        with _translate_errors(collection, "find_one"):
            doc = await self._db[collection].find_one(_to_mongo(filters))
        return _from_mongo(doc) if doc else None

    async def update(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> bool:
        return await self.update_one(collection, {"id": document_id}, updates)

    async def update_one(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> bool:
        update_doc = {k: v for k, v in updates.items() if k != "id"}
        with _translate_errors(collection, "update_one"):
            result = await self._db[collection].update_one(
                _to_mongo(filters),
                {"$set": update_doc},
            )
        return bool(result.matched_count > 0)

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        with _translate_errors(collection, "count"):
            if filters:
                return int(
                    await self._db[collection].count_documents(_to_mongo(filters))
                )
            return int(await self._db[collection].estimated_document_count())

    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
        partial_filter: dict[str, Any] | None = None,
        expire_after_seconds: int | None = None,
    ) -> str:
        options: dict[str, Any] = {"unique": unique}
        if name:
            options["name"] = name
        if partial_filter:
            options["partialFilterExpression"] = partial_filter
        if expire_after_seconds is not None:
            options["expireAfterSeconds"] = expire_after_seconds

        with _translate_errors(collection, "create_index"):
            index_name = await self._db[collection].create_index(fields, **options)
        return str(index_name)

    async def health_check(self) -> HealthStatus:
        """Check service health."""
        start = time.perf_counter()
        try:
            await self._client.admin.command("ping")
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=False,
                latency_ms=latency_ms,
                message=f"MongoDB health check failed: {e}",
                details={"database": self._database_name, "error": str(e)},
            )
        latency_ms = (time.perf_counter() - start) * 1000
        return HealthStatus(
            healthy=True,
            latency_ms=latency_ms,
            message="MongoDB is healthy",
            details={"database": self._database_name},
        )

    async def close(self) -> None:
        """Close the client connection."""
        self._client.close()
