"""Thumbnail reference and the quality tiers it can come from."""

from enum import Enum

from pydantic import BaseModel, Field


class ThumbnailTier(str, Enum):
    """Thumbnail sources, best first."""

    PROVIDER = "provider"  # Frame decoded by the processing provider
    SYNTHESIZED = "synthesized"  # Generated graphic keyed by video identity
    CLIENT_CAPTURE = "client_capture"  # Frame captured by the uploading client
    PLACEHOLDER = "placeholder"  # Generic image

    @property
    def rank(self) -> int:
        """1 for the best tier, 4 for the placeholder."""
        return _RANKS[self]

    @property
    def is_usable(self) -> bool:
        """Whether the tier shows something specific to the video."""
        return self is not ThumbnailTier.PLACEHOLDER

    def outranks(self, other: "ThumbnailTier | None") -> bool:
        """True when this tier may replace ``other`` on a record."""
        return other is None or self.rank <= other.rank


_RANKS = {
    ThumbnailTier.PROVIDER: 1,
    ThumbnailTier.SYNTHESIZED: 2,
    ThumbnailTier.CLIENT_CAPTURE: 3,
    ThumbnailTier.PLACEHOLDER: 4,
}


class Thumbnail(BaseModel):
    """A thumbnail URL together with the tier that produced it."""

    ref: str = Field(min_length=1, description="URL of the thumbnail image")
    tier: ThumbnailTier = Field(description="Tier that produced the image")

    model_config = {"frozen": True}
