"""Abstract base class for document database operations."""

from abc import ABC, abstractmethod
from typing import Any

from video_orchestrator.commons.infrastructure.blob.base import HealthStatus


class DocumentDBError(Exception):
    """Base class for document database errors."""


class DocumentConflictError(DocumentDBError):
    """Raised when a write violates a unique index."""

    def __init__(self, collection: str, detail: str) -> None:
        self.collection = collection
        self.detail = detail
        super().__init__(f"Unique constraint violated in {collection}: {detail}")


class DocumentDBUnavailableError(DocumentDBError):
    """Raised when the database cannot be reached.

    Never equivalent to "not found": callers must propagate it.
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Document database unavailable during {operation}: {reason}")


class DocumentDBBase(ABC):
    """Abstract base class for document database operations.

    Documents are plain dicts whose ``id`` key is the primary key. Filters
    use MongoDB query syntax restricted to equality, ``$in``, ``$gt`` and
    ``$exists``, and may refer to the primary key as ``id``.
    """

    @abstractmethod
    async def insert(
        self,
        collection: str,
        document: dict[str, Any],
    ) -> str:
        """Insert a document.

        Returns:
            The document ID.

        Raises:
            DocumentConflictError: If a unique index is violated.
        """

    @abstractmethod
    async def find_by_id(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        """Find a document by ID, None if absent."""

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[dict[str, Any]]:
        """Find documents matching filters.

        Args:
            collection: Collection name.
            filters: Query filters.
            skip: Number of documents to skip.
            limit: Maximum documents to return.
            sort: Sort specification [(field, direction)].
                  Direction: 1 for ascending, -1 for descending.
        """

    @abstractmethod
    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Find a single document matching filters."""

    @abstractmethod
    async def update(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> bool:
        """Set fields on a document by ID.

        Returns:
            True if the document exists.
        """

    @abstractmethod
    async def update_one(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> bool:
        """Set fields on the first document matching ``filters``.

        This is the compare-and-set primitive: put the expected current
        values in ``filters`` and the write only happens if they still hold.

        Returns:
            True if a document matched.

        Raises:
            DocumentConflictError: If the update violates a unique index.
        """

    @abstractmethod
    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """Count documents matching filters."""

    @abstractmethod
    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
        partial_filter: dict[str, Any] | None = None,
        expire_after_seconds: int | None = None,
    ) -> str:
        """Create an index on the collection.

        Args:
            collection: Collection name.
            fields: Fields to index [(field, direction)].
            unique: Whether the index enforces uniqueness.
            name: Optional index name.
            partial_filter: Only index documents matching this filter.
            expire_after_seconds: Delete documents this long after the
                indexed datetime field.

        Returns:
            Index name.
        """

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check service health."""

    @abstractmethod
    async def close(self) -> None:
        """Release client resources."""
