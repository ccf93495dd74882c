"""Upload intake: register an upload, then process it synchronously or not.

The record is always persisted before anything talks to the processing
provider, so a callback can never arrive for an upload the store does not
know about. A persistence failure aborts the request.
"""

import asyncio

from video_orchestrator.application.dtos.intake import (
    UploadVideoRequest,
    UploadVideoResponse,
)
from video_orchestrator.application.services.asset_submission import (
    AssetSubmissionService,
)
from video_orchestrator.application.services.background import BackgroundTaskRunner
from video_orchestrator.application.services.jobs import JobTracker
from video_orchestrator.application.services.media_source import MediaSourceResolver
from video_orchestrator.application.services.metadata_estimator import (
    estimate_metadata,
)
from video_orchestrator.application.services.mode_selector import (
    ProcessingModeSelector,
)
from video_orchestrator.application.services.reconciliation import AssetReconciler
from video_orchestrator.application.services.record_store import VideoRecordStore
from video_orchestrator.application.services.sync_coordinator import (
    SynchronousProcessingCoordinator,
    SyncOutcome,
)
from video_orchestrator.application.services.thumbnails import (
    ThumbnailFallbackChain,
    ThumbnailRequest,
)
from video_orchestrator.commons.infrastructure.blob import BlobNotFoundError
from video_orchestrator.commons.settings.models import ProcessingSettings
from video_orchestrator.commons.telemetry import LogContext, get_logger, log_exceptions
from video_orchestrator.domain.exceptions import UnsupportedMediaTypeException
from video_orchestrator.domain.models.job import JobType, ProcessingJob
from video_orchestrator.domain.models.video import VideoRecord, VideoStatus
from video_orchestrator.domain.value_objects import MetadataSource, ProcessingMode
from video_orchestrator.infrastructure.processing import ProviderError

# Outer bound on a synchronous run; the coordinator honours the deadline itself
_DEADLINE_SLACK_SECONDS = 5.0


def _to_processing(record: VideoRecord) -> VideoRecord:
    if record.status != VideoStatus.PENDING:
        return record
    return record.transition_to(VideoStatus.PROCESSING)


class UploadIntakeService:
    """Entry point for completed uploads and operator retries."""

    def __init__(
        self,
        record_store: VideoRecordStore,
        job_tracker: JobTracker,
        mode_selector: ProcessingModeSelector,
        coordinator: SynchronousProcessingCoordinator,
        submission: AssetSubmissionService,
        reconciler: AssetReconciler,
        thumbnail_chain: ThumbnailFallbackChain,
        media_source: MediaSourceResolver,
        task_runner: BackgroundTaskRunner,
        settings: ProcessingSettings,
    ) -> None:
        self._store = record_store
        self._jobs = job_tracker
        self._selector = mode_selector
        self._coordinator = coordinator
        self._submission = submission
        self._reconciler = reconciler
        self._thumbnails = thumbnail_chain
        self._media_source = media_source
        self._runner = task_runner
        self._settings = settings
        self._logger = get_logger(__name__)

    async def submit(self, request: UploadVideoRequest) -> UploadVideoResponse:
        """Register an upload and start processing it.

        Synchronous uploads return once the provider finished or the
        deadline passed; asynchronous ones return right away with a
        placeholder thumbnail.

        Raises:
            UnsupportedMediaTypeException: If the MIME type is not a video.
            RecordStoreUnavailableException: If the record cannot be persisted.
            FindOrCreateAttemptsExceededException: If deduplication by
                provider asset id kept conflicting.
        """
        if not request.mime_type.lower().startswith("video/"):
            raise UnsupportedMediaTypeException(request.mime_type)

        record, created = await self._register(request)

        with LogContext(video_id=record.id):
            mode = self._selector.select(record.size_bytes, record.mime_type)
            if not created:
                self._logger.info(
                    "Upload already registered for this asset",
                    extra={"external_asset_id": record.external_asset_id},
                )
                return self._response(record, mode, created=False)

            self._logger.info(
                "Upload registered",
                extra={
                    "processing_mode": mode.value,
                    "size_bytes": record.size_bytes,
                    "mime_type": record.mime_type,
                },
            )
            if mode == ProcessingMode.SYNCHRONOUS:
                record = await self._process_synchronously(
                    record, request.client_capture
                )
            else:
                record = await self._dispatch_asynchronously(
                    record, request.client_capture
                )
            return self._response(record, mode, created=True)

    async def retry(self, video_id: str) -> VideoRecord:
        """Operator retry of a failed record through the asynchronous path.

        Raises:
            VideoNotFoundException: If the record does not exist.
            RetryNotAllowedException: If the record is not ``failed``.
        """
        record = await self._store.update(video_id, lambda r: r.reset_for_retry())
        with LogContext(video_id=video_id):
            self._logger.info("Operator retry requested")
            return await self._dispatch_asynchronously(record, None)

    async def get_status(self, video_id: str) -> VideoRecord:
        return await self._store.require(video_id)

    async def list_jobs(self, video_id: str) -> list[ProcessingJob]:
        await self._store.require(video_id)
        return await self._jobs.list_for_video(video_id)

    async def _register(self, request: UploadVideoRequest) -> tuple[VideoRecord, bool]:
        record = VideoRecord(
            storage_key=request.storage_key,
            original_filename=request.filename,
            size_bytes=request.size_bytes,
            mime_type=request.mime_type,
            title=request.title,
            description=request.description,
            category=request.category,
            tags=request.tags,
            visibility=request.visibility,
            download_url=self._media_source.direct_download_url(request.storage_key),
        ).with_metadata(
            estimate_metadata(request.size_bytes, request.mime_type),
            MetadataSource.ESTIMATED,
        )

        if request.external_asset_id:
            result = await self._store.find_or_create_by_external_asset_id(
                request.external_asset_id, record
            )
            return result.record, result.created
        return await self._store.create(record), True

    async def _process_synchronously(
        self, record: VideoRecord, client_capture: str | None
    ) -> VideoRecord:
        deadline = self._settings.sync_deadline_seconds
        record = await self._store.update(record.id, _to_processing)

        try:
            result = await asyncio.wait_for(
                self._coordinator.process(
                    record.id,
                    record.storage_key,
                    existing_asset_id=record.external_asset_id,
                    deadline_seconds=deadline,
                ),
                timeout=deadline + _DEADLINE_SLACK_SECONDS,
            )
        except TimeoutError:
            self._logger.warning(
                "Synchronous processing overran its deadline",
                extra={"deadline_seconds": deadline},
            )
            result = None

        record = result.record if result else await self._store.require(record.id)

        if record.status != VideoStatus.READY:
            thumbnail = await self._thumbnails.generate(
                ThumbnailRequest(
                    video_id=record.id,
                    title=record.title,
                    playback_id=record.external_playback_id,
                    duration_seconds=record.duration_seconds,
                    client_capture=client_capture,
                )
            )
            record = await self._store.update(
                record.id, lambda r: r.with_thumbnail(thumbnail)
            )

        # Merged after the fallback thumbnail is stored so it can degrade
        if result is not None and result.outcome == SyncOutcome.ERRORED:
            record = await self._reconciler.apply_errored(record.id, result.errors)

        # No asset yet: hand creation to the background, reusing the open job
        if record.external_asset_id is None and record.status == VideoStatus.PROCESSING:
            job = None
            if result is not None and result.outcome == SyncOutcome.STILL_PROCESSING:
                job = result.job
            self._runner.submit(
                self._create_asset(record.id, record.storage_key, job),
                name=f"asset-creation:{record.id}",
            )
        return record

    async def _dispatch_asynchronously(
        self, record: VideoRecord, client_capture: str | None
    ) -> VideoRecord:
        placeholder = self._thumbnails.placeholder
        record = await self._store.update(
            record.id, lambda r: _to_processing(r).with_thumbnail(placeholder)
        )

        thumbnail_job = await self._jobs.create(
            record.id, JobType.THUMBNAIL_REGENERATION
        )
        self._runner.submit(
            self._regenerate_thumbnail(
                record.id, record.title, client_capture, thumbnail_job
            ),
            name=f"thumbnail:{record.id}",
        )

        # A directly submitted asset already exists; its callbacks finish it
        if record.external_asset_id is None:
            asset_job = await self._jobs.create(record.id, JobType.ASSET_CREATION)
            self._runner.submit(
                self._create_asset(record.id, record.storage_key, asset_job),
                name=f"asset-creation:{record.id}",
            )
        return record

    @log_exceptions(message="Background asset creation failed")
    async def _create_asset(
        self, video_id: str, storage_key: str, job: ProcessingJob | None
    ) -> None:
        with LogContext(video_id=video_id, processing_mode="asynchronous"):
            if job is None:
                job = await self._jobs.create(video_id, JobType.ASSET_CREATION)
            try:
                await self._submission.submit(video_id, storage_key, job)
            except (ProviderError, BlobNotFoundError) as e:
                await self._jobs.fail(job, str(e))
                await self._reconciler.apply_errored(video_id, [str(e)])

    @log_exceptions(message="Background thumbnail generation failed")
    async def _regenerate_thumbnail(
        self,
        video_id: str,
        title: str,
        client_capture: str | None,
        job: ProcessingJob,
    ) -> None:
        with LogContext(video_id=video_id):
            job = await self._jobs.start(job)
            try:
                thumbnail = await self._thumbnails.generate(
                    ThumbnailRequest(
                        video_id=video_id, title=title, client_capture=client_capture
                    )
                )
                await self._store.update(
                    video_id, lambda r: r.with_thumbnail(thumbnail)
                )
            except Exception as e:
                await self._jobs.fail(job, str(e))
                raise
            await self._jobs.succeed(job)

    def _response(
        self, record: VideoRecord, mode: ProcessingMode, *, created: bool
    ) -> UploadVideoResponse:
        thumbnail = record.thumbnail or self._thumbnails.placeholder
        return UploadVideoResponse(
            id=record.id,
            status=record.status,
            processing_mode=mode,
            thumbnail_ref=thumbnail.ref,
            thumbnail_tier=thumbnail.tier,
            streaming_url=record.streaming_url,
            download_url=record.download_url,
            estimated_duration=record.duration_seconds,
            metadata_source=(
                record.metadata_source.value if record.metadata_source else None
            ),
            degraded=record.degraded,
            created=created,
        )
