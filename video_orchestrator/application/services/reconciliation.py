"""Merging provider outcomes into video records.

Shared by the synchronous path and the webhook processor so both
paths apply exactly the same rules.
"""

from video_orchestrator.application.services.jobs import JobTracker
from video_orchestrator.application.services.metadata_estimator import (
    aspect_ratio_of,
    dimensions_from_aspect_ratio,
    estimate_bitrate,
)
from video_orchestrator.application.services.record_store import (
    RecordMutation,
    VideoRecordStore,
)
from video_orchestrator.application.services.thumbnails import provider_thumbnail
from video_orchestrator.commons.telemetry import get_logger
from video_orchestrator.domain.models.job import JobType
from video_orchestrator.domain.models.video import VideoRecord, VideoStatus
from video_orchestrator.domain.value_objects.media_metadata import (
    MediaMetadata,
    MetadataSource,
)
from video_orchestrator.infrastructure.processing import (
    ProcessingProviderBase,
    ProviderAsset,
)

# Jobs whose outcome the provider decides
PROVIDER_JOB_TYPES = (
    JobType.ASSET_CREATION,
    JobType.AUDIO_ENHANCEMENT,
    JobType.CAPTION_GENERATION,
)


def authoritative_metadata(
    asset: ProviderAsset, size_bytes: int
) -> MediaMetadata | None:
    """Metadata reported by the provider, or None before it knows the duration.

    Dimensions come from the video track, falling back to the aspect ratio
    at a 1080 base height. Bitrate is the average over the whole file.
    """
    if asset.duration_seconds is None:
        return None

    track = asset.video_track
    dimensions: tuple[int, int] | None = None
    if track and track.max_width and track.max_height:
        dimensions = (track.max_width, track.max_height)
    elif asset.aspect_ratio:
        dimensions = dimensions_from_aspect_ratio(asset.aspect_ratio)
    if dimensions is None:
        return None

    width, height = dimensions
    if asset.duration_seconds > 0:
        bitrate = int(size_bytes * 8 / asset.duration_seconds)
    else:
        bitrate = estimate_bitrate(width, height)
    return MediaMetadata(
        duration_seconds=asset.duration_seconds,
        width=width,
        height=height,
        aspect_ratio=asset.aspect_ratio or aspect_ratio_of(width, height),
        bitrate=bitrate,
    )


class AssetReconciler:
    """Applies ``ready`` and ``errored`` asset outcomes to records and jobs."""

    def __init__(
        self,
        provider: ProcessingProviderBase,
        record_store: VideoRecordStore,
        job_tracker: JobTracker,
        frame_time_seconds: float,
        audio_enhancement_requested: bool,
    ) -> None:
        self._provider = provider
        self._store = record_store
        self._jobs = job_tracker
        self._frame_time = frame_time_seconds
        self._audio_requested = audio_enhancement_requested
        self._logger = get_logger(__name__)

    def ready_mutation(self, asset: ProviderAsset) -> RecordMutation:
        """Mutation merging a ready asset; status is left alone once terminal."""

        def merge(record: VideoRecord) -> VideoRecord:
            merged = record.link_external_asset(
                asset.id, asset.playback_id, asset.status.value
            )
            metadata = authoritative_metadata(asset, record.size_bytes)
            if metadata is not None:
                merged = merged.with_metadata(metadata, MetadataSource.AUTHORITATIVE)
            if asset.playback_id:
                merged = merged.with_thumbnail(
                    provider_thumbnail(
                        self._provider,
                        asset.playback_id,
                        asset.duration_seconds,
                        self._frame_time,
                    )
                ).with_playback_urls(
                    streaming_url=self._provider.streaming_url(asset.playback_id),
                    download_url=self._provider.download_url(asset.playback_id),
                )
            if self._audio_requested and not merged.audio_enhanced:
                merged = merged.with_audio_enhanced()
            if not merged.is_terminal:
                merged = merged.mark_ready()
            return merged

        return merge

    @staticmethod
    def errored_mutation(message: str) -> RecordMutation:
        """Mutation for a provider failure.

        Terminal records are untouched. Otherwise the record degrades to a
        ready-from-fallbacks state if it holds a usable thumbnail, and fails
        if it does not.
        """

        def merge(record: VideoRecord) -> VideoRecord:
            if record.is_terminal:
                return record
            errored = record.with_external_status("errored")
            if errored.has_usable_thumbnail:
                return errored.mark_degraded(message)
            return errored.mark_failed(message)

        return merge

    async def apply_ready(self, video_id: str, asset: ProviderAsset) -> VideoRecord:
        before = await self._store.require(video_id)
        record = await self._store.update(video_id, self.ready_mutation(asset))
        await self._jobs.succeed_open(video_id, JobType.ASSET_CREATION)
        if self._audio_requested:
            await self._jobs.succeed_open(video_id, JobType.AUDIO_ENHANCEMENT)

        if before.is_terminal:
            self._logger.info(
                "Ready asset merged into terminal record, status unchanged",
                extra={"video_id": video_id, "status": record.status.value},
            )
        else:
            self._logger.info(
                "Video ready",
                extra={
                    "video_id": video_id,
                    "external_asset_id": asset.id,
                    "duration_seconds": record.duration_seconds,
                },
            )
        return record

    async def apply_errored(self, video_id: str, errors: list[str]) -> VideoRecord:
        message = "; ".join(errors) or "Processing provider reported an error"
        record = await self._store.update(video_id, self.errored_mutation(message))
        await self._jobs.fail_open(video_id, message, list(PROVIDER_JOB_TYPES))

        if record.status == VideoStatus.FAILED:
            self._logger.error(
                "Video processing failed",
                extra={"video_id": video_id, "error": message},
            )
        elif record.degraded:
            self._logger.warning(
                "Provider failed, serving video from fallbacks",
                extra={"video_id": video_id, "error": message},
            )
        return record
