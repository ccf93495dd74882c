"""Operator sweep that re-runs the thumbnail chain for placeholder records."""

import logging

from video_orchestrator.application.dtos.maintenance import (
    ReprocessThumbnailsResponse,
)
from video_orchestrator.application.services.jobs import JobTracker
from video_orchestrator.application.services.record_store import VideoRecordStore
from video_orchestrator.application.services.thumbnails import (
    ThumbnailFallbackChain,
    ThumbnailRequest,
)
from video_orchestrator.commons.settings.models import ReprocessingSettings
from video_orchestrator.commons.telemetry import LogContext, get_logger, timed
from video_orchestrator.domain.exceptions import (
    ConcurrentUpdateException,
    VideoNotFoundException,
)
from video_orchestrator.domain.models.job import JobType
from video_orchestrator.domain.models.video import VideoRecord


class ThumbnailReprocessingService:
    """Upgrades missing or placeholder thumbnails in small batches.

    Each call handles at most ``max_batch_size`` records after ``cursor``
    so that a single invocation stays short; callers loop on
    ``next_cursor`` until it is null.
    """

    def __init__(
        self,
        record_store: VideoRecordStore,
        job_tracker: JobTracker,
        thumbnail_chain: ThumbnailFallbackChain,
        settings: ReprocessingSettings,
    ) -> None:
        self._store = record_store
        self._jobs = job_tracker
        self._chain = thumbnail_chain
        self._settings = settings
        self._logger = get_logger(__name__)

    @timed(level=logging.INFO)
    async def run_batch(
        self, limit: int | None = None, cursor: str | None = None
    ) -> ReprocessThumbnailsResponse:
        limit = min(limit or self._settings.batch_size, self._settings.max_batch_size)
        records = await self._store.find_needing_thumbnails(limit, after_id=cursor)
        summary = ReprocessThumbnailsResponse(processed=len(records))

        for record in records:
            with LogContext(video_id=record.id):
                try:
                    upgraded = await self._reprocess(record)
                except (VideoNotFoundException, ConcurrentUpdateException) as e:
                    self._logger.warning(
                        "Thumbnail reprocessing skipped record",
                        extra={"error": str(e)},
                    )
                    summary.failed += 1
                    continue
            if upgraded:
                summary.upgraded += 1
            else:
                summary.unchanged += 1

        if records and len(records) == limit:
            summary.next_cursor = records[-1].id

        self._logger.info(
            "Thumbnail reprocessing batch finished",
            extra={
                "cursor": cursor,
                "processed": summary.processed,
                "upgraded": summary.upgraded,
                "unchanged": summary.unchanged,
                "failed": summary.failed,
                "next_cursor": summary.next_cursor,
            },
        )
        return summary

    async def _reprocess(self, record: VideoRecord) -> bool:
        """Run the chain for one record; True if its stored tier improved."""
        job = await self._jobs.create(record.id, JobType.THUMBNAIL_REGENERATION)
        job = await self._jobs.start(job)

        provider_ready = record.external_status == "ready" and bool(
            record.external_playback_id
        )
        thumbnail = await self._chain.generate(
            ThumbnailRequest(
                video_id=record.id,
                title=record.title,
                playback_id=record.external_playback_id,
                provider_ready=provider_ready,
                duration_seconds=record.duration_seconds,
            )
        )
        try:
            updated = await self._store.update(
                record.id, lambda r: r.with_thumbnail(thumbnail)
            )
        except (VideoNotFoundException, ConcurrentUpdateException) as e:
            await self._jobs.fail(job, str(e))
            raise
        await self._jobs.succeed(job)
        return updated.thumbnail_tier != record.thumbnail_tier
