"""Domain value objects."""

from video_orchestrator.domain.value_objects.media_metadata import (
    MediaMetadata,
    MetadataSource,
    format_duration,
)
from video_orchestrator.domain.value_objects.processing_mode import ProcessingMode

__all__ = [
    "MediaMetadata",
    "MetadataSource",
    "ProcessingMode",
    "format_duration",
]
