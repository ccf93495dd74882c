"""Thumbnail fallback chain.

Each tier implements ``attempt(request) -> Thumbnail | None``. The chain
walks tiers best-first and returns the first result; any tier failure
(timeout, provider or storage error, bad input) falls through to the next
one, and the placeholder at the end cannot fail.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar

from video_orchestrator.commons.infrastructure.blob import BlobStorageBase
from video_orchestrator.commons.telemetry import get_logger
from video_orchestrator.domain.models.thumbnail import Thumbnail, ThumbnailTier
from video_orchestrator.infrastructure.processing import ProcessingProviderBase
from video_orchestrator.infrastructure.thumbnails import decode_capture, render_preview


@dataclass
class ThumbnailRequest:
    """What the tiers may use to produce a thumbnail for one video."""

    video_id: str
    title: str
    playback_id: str | None = None
    provider_ready: bool = False
    duration_seconds: float | None = None
    client_capture: str | None = None


def provider_thumbnail(
    provider: ProcessingProviderBase,
    playback_id: str,
    duration_seconds: float | None,
    frame_time_seconds: float,
) -> Thumbnail:
    """Provider frame thumbnail, grabbed mid-video for short clips."""
    time_seconds = frame_time_seconds
    if duration_seconds:
        time_seconds = min(frame_time_seconds, duration_seconds / 2)
    return Thumbnail(
        ref=provider.thumbnail_url(playback_id, round(time_seconds, 2)),
        tier=ThumbnailTier.PROVIDER,
    )


class ThumbnailTierBase(ABC):
    """One strategy of the fallback chain."""

    tier: ClassVar[ThumbnailTier]

    @abstractmethod
    async def attempt(self, request: ThumbnailRequest) -> Thumbnail | None:
        """Produce a thumbnail, or None when this tier has nothing to offer."""


class ProviderFrameTier(ThumbnailTierBase):
    """Frame decoded by the processing provider; needs a ready asset."""

    tier = ThumbnailTier.PROVIDER

    def __init__(
        self, provider: ProcessingProviderBase, frame_time_seconds: float
    ) -> None:
        self._provider = provider
        self._frame_time = frame_time_seconds

    async def attempt(self, request: ThumbnailRequest) -> Thumbnail | None:
        if not request.playback_id or not request.provider_ready:
            return None
        return provider_thumbnail(
            self._provider,
            request.playback_id,
            request.duration_seconds,
            self._frame_time,
        )


class SynthesizedPreviewTier(ThumbnailTierBase):
    """Generated graphic keyed by video identity, stored in blob storage."""

    tier = ThumbnailTier.SYNTHESIZED

    def __init__(
        self,
        blob_storage: BlobStorageBase,
        bucket: str,
        width: int,
        height: int,
    ) -> None:
        self._blob = blob_storage
        self._bucket = bucket
        self._width = width
        self._height = height

    async def attempt(self, request: ThumbnailRequest) -> Thumbnail | None:
        image = await asyncio.to_thread(
            render_preview, request.video_id, request.title, self._width, self._height
        )
        path = f"{request.video_id}/preview.png"
        await self._blob.upload(
            self._bucket,
            path,
            image,
            content_type="image/png",
            metadata={"video-id": request.video_id, "tier": self.tier.value},
        )
        return Thumbnail(ref=self._blob.public_url(self._bucket, path), tier=self.tier)


class ClientCaptureTier(ThumbnailTierBase):
    """Frame captured by the uploading client, sent as a data URL."""

    tier = ThumbnailTier.CLIENT_CAPTURE

    def __init__(
        self, blob_storage: BlobStorageBase, bucket: str, max_bytes: int
    ) -> None:
        self._blob = blob_storage
        self._bucket = bucket
        self._max_bytes = max_bytes

    async def attempt(self, request: ThumbnailRequest) -> Thumbnail | None:
        if not request.client_capture:
            return None
        capture = decode_capture(request.client_capture, self._max_bytes)
        path = f"{request.video_id}/client-capture.{capture.extension}"
        await self._blob.upload(
            self._bucket,
            path,
            capture.data,
            content_type=capture.content_type,
            metadata={"video-id": request.video_id, "tier": self.tier.value},
        )
        return Thumbnail(ref=self._blob.public_url(self._bucket, path), tier=self.tier)


class PlaceholderTier(ThumbnailTierBase):
    """Generic image; always available."""

    tier = ThumbnailTier.PLACEHOLDER

    def __init__(self, placeholder_url: str) -> None:
        self._placeholder_url = placeholder_url

    async def attempt(self, request: ThumbnailRequest) -> Thumbnail | None:
        return Thumbnail(ref=self._placeholder_url, tier=self.tier)


class ThumbnailFallbackChain:
    """Runs tiers in order until one yields a thumbnail."""

    def __init__(
        self,
        tiers: Sequence[ThumbnailTierBase],
        placeholder_url: str,
        tier_timeout_seconds: float,
    ) -> None:
        self._tiers = sorted(tiers, key=lambda t: t.tier.rank)
        self._placeholder = Thumbnail(
            ref=placeholder_url, tier=ThumbnailTier.PLACEHOLDER
        )
        self._timeout = tier_timeout_seconds
        self._logger = get_logger(__name__)

    @property
    def placeholder(self) -> Thumbnail:
        return self._placeholder

    async def generate(self, request: ThumbnailRequest) -> Thumbnail:
        """Best thumbnail available right now; never None."""
        for tier in self._tiers:
            try:
                result = await asyncio.wait_for(tier.attempt(request), self._timeout)
            except TimeoutError:
                self._logger.warning(
                    "Thumbnail tier timed out",
                    extra={
                        "video_id": request.video_id,
                        "tier": tier.tier.value,
                        "timeout_seconds": self._timeout,
                    },
                )
                continue
            except Exception as e:
                self._logger.warning(
                    "Thumbnail tier failed",
                    extra={
                        "video_id": request.video_id,
                        "tier": tier.tier.value,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                continue

            if result is not None:
                self._logger.info(
                    "Thumbnail generated",
                    extra={"video_id": request.video_id, "tier": result.tier.value},
                )
                return result

        self._logger.error(
            "Every thumbnail tier failed, using placeholder",
            extra={"video_id": request.video_id},
        )
        return self._placeholder
