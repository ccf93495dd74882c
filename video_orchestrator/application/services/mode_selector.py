"""Synchronous vs asynchronous processing decision."""

from video_orchestrator.commons.settings.models import ProcessingSettings
from video_orchestrator.domain.value_objects.processing_mode import ProcessingMode

_MB = 1024 * 1024

BASE_PROCESSING_SECONDS = 30.0
MAX_PROCESSING_SECONDS = 120.0
SECONDS_PER_MB_OVER_100 = 0.5

# Transcoding cost relative to an average container
CONTAINER_FACTORS: dict[str, float] = {
    "video/mp4": 0.8,
    "video/quicktime": 1.2,
    "video/x-msvideo": 1.5,
    "video/avi": 1.5,
}


def estimate_processing_seconds(size_bytes: int, mime_type: str) -> float:
    """Rough provider turnaround for a file, capped at two minutes."""
    seconds = BASE_PROCESSING_SECONDS
    size_mb = size_bytes / _MB
    if size_mb > 100:
        seconds += (size_mb - 100) * SECONDS_PER_MB_OVER_100
    seconds *= CONTAINER_FACTORS.get(mime_type.lower(), 1.0)
    return min(seconds, MAX_PROCESSING_SECONDS)


class ProcessingModeSelector:
    """Classifies uploads as synchronous or asynchronous.

    Deterministic and side-effect free: the same size, MIME type and
    settings always give the same mode.

    Rules, in order:
        1. At or above ``sync_size_threshold_mb``: asynchronous.
        2. Below ``small_file_mb``: synchronous.
        3. A web-ready container from ``fast_mime_types``: synchronous.
        4. Otherwise synchronous only if the estimated processing time fits
           in the synchronous deadline.
    """

    def __init__(self, settings: ProcessingSettings) -> None:
        self._settings = settings
        self._fast_types = frozenset(t.lower() for t in settings.fast_mime_types)

    def select(self, size_bytes: int, mime_type: str) -> ProcessingMode:
        if size_bytes >= self._settings.sync_size_threshold_bytes:
            return ProcessingMode.ASYNCHRONOUS
        if size_bytes < self._settings.small_file_bytes:
            return ProcessingMode.SYNCHRONOUS
        if mime_type.lower() in self._fast_types:
            return ProcessingMode.SYNCHRONOUS
        if (
            estimate_processing_seconds(size_bytes, mime_type)
            < self._settings.sync_deadline_seconds
        ):
            return ProcessingMode.SYNCHRONOUS
        return ProcessingMode.ASYNCHRONOUS
