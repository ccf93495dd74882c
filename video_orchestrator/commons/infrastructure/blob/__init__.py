"""Blob storage abstractions and implementations."""

from video_orchestrator.commons.infrastructure.blob.base import (
    BlobMetadata,
    BlobNotFoundError,
    BlobStorageBase,
    HealthStatus,
)
from video_orchestrator.commons.infrastructure.blob.minio_provider import (
    MinioBlobStorage,
)

__all__ = [
    # Base classes
    "BlobMetadata",
    "BlobStorageBase",
    "HealthStatus",
    # Implementations
    "MinioBlobStorage",
    # Exceptions
    "BlobNotFoundError",
]
