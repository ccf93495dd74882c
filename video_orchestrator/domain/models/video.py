"""Video record domain model and its status state machine."""

from datetime import UTC, datetime
from enum import Enum
from typing import Self
from uuid import uuid4

from pydantic import BaseModel, Field

from video_orchestrator.domain.exceptions import (
    ExternalAssetConflictException,
    InvalidStatusTransitionException,
    RetryNotAllowedException,
)
from video_orchestrator.domain.models.thumbnail import Thumbnail, ThumbnailTier
from video_orchestrator.domain.value_objects.media_metadata import (
    MediaMetadata,
    MetadataSource,
)


class VideoStatus(str, Enum):
    """Lifecycle status of a video record."""

    PENDING = "pending"  # Record persisted, provider not engaged yet
    PROCESSING = "processing"  # Provider is working on the asset
    READY = "ready"  # Playable; terminal
    FAILED = "failed"  # Provider gave up and nothing usable exists; terminal

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class Visibility(str, Enum):
    """Who may watch the video once it is ready."""

    PUBLIC = "public"
    UNLISTED = "unlisted"
    PRIVATE = "private"


TERMINAL_STATUSES = frozenset({VideoStatus.READY, VideoStatus.FAILED})

ALLOWED_TRANSITIONS: dict[VideoStatus, frozenset[VideoStatus]] = {
    VideoStatus.PENDING: frozenset({VideoStatus.PROCESSING}),
    VideoStatus.PROCESSING: frozenset({VideoStatus.READY, VideoStatus.FAILED}),
    VideoStatus.READY: frozenset(),
    VideoStatus.FAILED: frozenset(),
}


def can_transition(current: VideoStatus, target: VideoStatus) -> bool:
    """Whether ``target`` is reachable from ``current`` along allowed edges."""
    if target in ALLOWED_TRANSITIONS[current]:
        return True
    return any(
        target in ALLOWED_TRANSITIONS[step] for step in ALLOWED_TRANSITIONS[current]
    )


class VideoRecord(BaseModel):
    """Canonical record of one uploaded video.

    Instances are immutable in practice: every mutation method returns a
    copy, and only the record store persists them. ``version`` is bumped by
    the store on each successful write and guards concurrent updates.
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Identifier assigned at intake",
    )

    # Upload facts, set once
    storage_key: str = Field(description="Object storage key of the upload")
    original_filename: str = Field(description="Filename declared by the client")
    size_bytes: int = Field(gt=0, description="Declared upload size")
    mime_type: str = Field(description="Declared MIME type")

    # User-supplied metadata, never touched by processing
    title: str = Field(description="Video title")
    description: str = Field(default="", description="Video description")
    category: str | None = Field(default=None, description="Free-form category")
    tags: list[str] = Field(default_factory=list, description="User tags")
    visibility: Visibility = Field(default=Visibility.PRIVATE)

    status: VideoStatus = Field(default=VideoStatus.PENDING)

    # Provider linkage
    external_asset_id: str | None = Field(
        default=None, description="Provider asset id, unique across records"
    )
    external_playback_id: str | None = Field(default=None)
    external_status: str | None = Field(
        default=None, description="Last asset status reported by the provider"
    )

    # Playback references, upgraded incrementally
    thumbnail_ref: str | None = Field(default=None)
    thumbnail_tier: ThumbnailTier | None = Field(default=None)
    streaming_url: str | None = Field(default=None)
    download_url: str | None = Field(default=None)

    # Media metadata
    duration_seconds: float | None = Field(default=None, ge=0)
    width: int | None = Field(default=None, ge=0)
    height: int | None = Field(default=None, ge=0)
    aspect_ratio: str | None = Field(default=None)
    bitrate: int | None = Field(default=None, ge=0)
    metadata_source: MetadataSource | None = Field(default=None)

    # Best-effort enrichment
    transcript_text: str | None = Field(default=None)
    captions_ref: str | None = Field(default=None)
    audio_enhanced: bool = Field(default=False)

    degraded: bool = Field(
        default=False,
        description="Ready without provider output, served from fallbacks",
    )
    processing_error: str | None = Field(default=None)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    ready_at: datetime | None = Field(default=None)
    version: int = Field(default=0, ge=0)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def thumbnail(self) -> Thumbnail | None:
        if self.thumbnail_ref is None or self.thumbnail_tier is None:
            return None
        return Thumbnail(ref=self.thumbnail_ref, tier=self.thumbnail_tier)

    @property
    def has_usable_thumbnail(self) -> bool:
        """True when a non-placeholder thumbnail is stored."""
        return self.thumbnail_tier is not None and self.thumbnail_tier.is_usable

    @property
    def metadata(self) -> MediaMetadata | None:
        if (
            self.duration_seconds is None
            or self.width is None
            or self.height is None
            or self.aspect_ratio is None
            or self.bitrate is None
        ):
            return None
        return MediaMetadata(
            duration_seconds=self.duration_seconds,
            width=self.width,
            height=self.height,
            aspect_ratio=self.aspect_ratio,
            bitrate=self.bitrate,
        )

    def _touch(self, **updates: object) -> Self:
        return self.model_copy(update={**updates, "updated_at": datetime.now(UTC)})

    def transition_to(self, target: VideoStatus) -> Self:
        """Move along the state machine, passing through ``processing`` if needed.

        Re-entering the current status is a no-op.

        Raises:
            InvalidStatusTransitionException: If ``target`` is not reachable.
        """
        if target == self.status:
            return self
        if not can_transition(self.status, target):
            raise InvalidStatusTransitionException(self.id, self.status, target)
        updates: dict[str, object] = {"status": target}
        if target == VideoStatus.READY and self.ready_at is None:
            updates["ready_at"] = datetime.now(UTC)
        return self._touch(**updates)

    def mark_ready(self) -> Self:
        """Transition to ``ready``; ``ready_at`` is stamped only the first time."""
        return self.transition_to(VideoStatus.READY)

    def mark_failed(self, error_message: str) -> Self:
        """Transition to ``failed`` recording why."""
        failed = self.transition_to(VideoStatus.FAILED)
        return failed.model_copy(update={"processing_error": error_message})

    def mark_degraded(self, error_message: str) -> Self:
        """Finish as ``ready`` without provider output.

        The direct download URL stands in for the stream when the provider
        never produced one.
        """
        ready = self.transition_to(VideoStatus.READY)
        return ready.model_copy(
            update={
                "degraded": True,
                "processing_error": error_message,
                "streaming_url": self.streaming_url or self.download_url,
            }
        )

    def reset_for_retry(self) -> Self:
        """Operator retry: the only way out of ``failed``.

        Provider linkage and provider-produced references are dropped so the
        asset can be created again.

        Raises:
            RetryNotAllowedException: If the record is not ``failed``.
        """
        if self.status != VideoStatus.FAILED:
            raise RetryNotAllowedException(self.id, self.status)
        return self._touch(
            status=VideoStatus.PENDING,
            external_asset_id=None,
            external_playback_id=None,
            external_status=None,
            processing_error=None,
            degraded=False,
        )

    def link_external_asset(
        self,
        asset_id: str,
        playback_id: str | None = None,
        external_status: str | None = None,
    ) -> Self:
        """Attach the provider asset; linking the same asset again only refreshes.

        Raises:
            ExternalAssetConflictException: If linked to a different asset.
        """
        if self.external_asset_id not in (None, asset_id):
            raise ExternalAssetConflictException(
                self.id, self.external_asset_id, asset_id
            )
        return self._touch(
            external_asset_id=asset_id,
            external_playback_id=playback_id or self.external_playback_id,
            external_status=external_status or self.external_status,
        )

    def with_external_status(self, external_status: str) -> Self:
        return self._touch(external_status=external_status)

    def with_thumbnail(self, thumbnail: Thumbnail) -> Self:
        """Store ``thumbnail`` unless the current one comes from a better tier."""
        if not thumbnail.tier.outranks(self.thumbnail_tier):
            return self
        return self._touch(thumbnail_ref=thumbnail.ref, thumbnail_tier=thumbnail.tier)

    def with_playback_urls(
        self,
        *,
        streaming_url: str | None = None,
        download_url: str | None = None,
    ) -> Self:
        """Fill in playback URLs. ``None`` never clears an existing URL."""
        return self._touch(
            streaming_url=streaming_url or self.streaming_url,
            download_url=download_url or self.download_url,
        )

    def with_metadata(self, metadata: MediaMetadata, source: MetadataSource) -> Self:
        """Store media metadata; estimates never overwrite authoritative values."""
        if (
            source == MetadataSource.ESTIMATED
            and self.metadata_source == MetadataSource.AUTHORITATIVE
        ):
            return self
        return self._touch(
            duration_seconds=metadata.duration_seconds,
            width=metadata.width,
            height=metadata.height,
            aspect_ratio=metadata.aspect_ratio,
            bitrate=metadata.bitrate,
            metadata_source=source,
        )

    def with_captions(self, captions_ref: str, transcript_text: str | None) -> Self:
        return self._touch(
            captions_ref=captions_ref,
            transcript_text=transcript_text or self.transcript_text,
        )

    def with_audio_enhanced(self) -> Self:
        return self._touch(audio_enhanced=True)
