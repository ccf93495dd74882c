"""Document database abstractions and implementations."""

from video_orchestrator.commons.infrastructure.documentdb.base import (
    DocumentConflictError,
    DocumentDBBase,
    DocumentDBError,
    DocumentDBUnavailableError,
)
from video_orchestrator.commons.infrastructure.documentdb.mongodb_provider import (
    MongoDBDocumentDB,
)

__all__ = [
    "DocumentDBBase",
    "MongoDBDocumentDB",
    "DocumentDBError",
    "DocumentConflictError",
    "DocumentDBUnavailableError",
]
