"""External processing provider abstractions and implementations."""

from video_orchestrator.infrastructure.processing.base import (
    AssetStatus,
    EventKind,
    ProcessingProviderBase,
    ProviderAsset,
    ProviderError,
    ProviderEvent,
    ProviderRequestError,
    ProviderTrack,
    ProviderTransientError,
)
from video_orchestrator.infrastructure.processing.mux_provider import (
    MuxProcessingProvider,
)

__all__ = [
    # Base classes
    "ProcessingProviderBase",
    "ProviderAsset",
    "ProviderEvent",
    "ProviderTrack",
    "AssetStatus",
    "EventKind",
    # Implementations
    "MuxProcessingProvider",
    # Exceptions
    "ProviderError",
    "ProviderTransientError",
    "ProviderRequestError",
]
