"""Media metadata value object and its provenance."""

from enum import Enum

from pydantic import BaseModel, Field


class MetadataSource(str, Enum):
    """Where the media metadata of a record came from."""

    ESTIMATED = "estimated"  # Heuristic guess from size and MIME type
    AUTHORITATIVE = "authoritative"  # Reported by the processing provider


class MediaMetadata(BaseModel):
    """Duration, dimensions and bitrate of a video."""

    duration_seconds: float = Field(ge=0, description="Duration in seconds")
    width: int = Field(ge=0, description="Frame width in pixels")
    height: int = Field(ge=0, description="Frame height in pixels")
    aspect_ratio: str = Field(description="Aspect ratio as W:H, e.g. 16:9")
    bitrate: int = Field(ge=0, description="Bitrate in bits per second")

    model_config = {"frozen": True}

    @property
    def quality_label(self) -> str:
        """Coarse quality label derived from the pixel count."""
        pixels = self.width * self.height
        if pixels >= 3840 * 2160:
            return "4K"
        if pixels >= 1920 * 1080:
            return "1080p"
        if pixels >= 1280 * 720:
            return "720p"
        if pixels >= 854 * 480:
            return "480p"
        return "SD"


def format_duration(seconds: float) -> str:
    """Render a duration as ``H:MM:SS`` or ``M:SS``."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours:d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:d}:{secs:02d}"
