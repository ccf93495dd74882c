"""Infrastructure layer - external service implementations.

The factory lives in :mod:`video_orchestrator.infrastructure.factory` and is
imported from there, since it depends on the application services.
"""

from video_orchestrator.infrastructure.processing import (
    AssetStatus,
    EventKind,
    MuxProcessingProvider,
    ProcessingProviderBase,
    ProviderAsset,
    ProviderError,
    ProviderEvent,
    ProviderRequestError,
    ProviderTrack,
    ProviderTransientError,
)
from video_orchestrator.infrastructure.thumbnails import (
    InvalidCaptureError,
    decode_capture,
    render_preview,
)

__all__ = [
    # Processing provider
    "ProcessingProviderBase",
    "MuxProcessingProvider",
    "ProviderAsset",
    "ProviderEvent",
    "ProviderTrack",
    "AssetStatus",
    "EventKind",
    "ProviderError",
    "ProviderTransientError",
    "ProviderRequestError",
    # Thumbnails
    "render_preview",
    "decode_capture",
    "InvalidCaptureError",
]
