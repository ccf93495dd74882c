"""Creating provider assets for uploaded files."""

import asyncio

from video_orchestrator.application.services.jobs import JobTracker
from video_orchestrator.application.services.media_source import MediaSourceResolver
from video_orchestrator.application.services.record_store import VideoRecordStore
from video_orchestrator.commons.settings.models import ProviderSettings
from video_orchestrator.commons.telemetry import get_logger
from video_orchestrator.domain.models.job import JobType, ProcessingJob
from video_orchestrator.domain.models.video import VideoRecord, VideoStatus
from video_orchestrator.infrastructure.processing import (
    ProcessingProviderBase,
    ProviderAsset,
    ProviderTransientError,
)


def _begin_processing(record: VideoRecord) -> VideoRecord:
    if record.status != VideoStatus.PENDING:
        return record
    return record.transition_to(VideoStatus.PROCESSING)


class AssetSubmissionService:
    """Submits a stored upload to the provider and links the resulting asset.

    Transient provider errors are retried with exponential backoff, bounded
    by ``max_create_attempts`` and, when given, by a loop-clock deadline that
    also cuts off a call still in flight.
    """

    def __init__(
        self,
        provider: ProcessingProviderBase,
        record_store: VideoRecordStore,
        job_tracker: JobTracker,
        media_source: MediaSourceResolver,
        settings: ProviderSettings,
    ) -> None:
        self._provider = provider
        self._store = record_store
        self._jobs = job_tracker
        self._source = media_source
        self._settings = settings
        self._logger = get_logger(__name__)

    async def submit(
        self,
        video_id: str,
        storage_key: str,
        job: ProcessingJob,
        deadline_at: float | None = None,
    ) -> tuple[ProviderAsset, ProcessingJob]:
        """Create the asset, link it to the record and open follow-up jobs.

        Raises:
            BlobNotFoundError: If the source file is missing.
            ProviderTransientError: If every attempt failed transiently or the
                deadline left no room for another one.
            ProviderRequestError: If the provider rejected the submission.
        """
        job = await self._jobs.start(job)
        input_url = await self._source.provider_input_url(storage_key)
        asset = await self._create_with_retries(video_id, input_url, deadline_at)

        await self._store.link_external_asset(
            video_id, asset.id, asset.playback_id, asset.status.value
        )
        await self._store.update(video_id, _begin_processing)
        job = await self._jobs.attach_external_id(job, asset.id)

        if self._settings.normalize_audio:
            await self._open_followup(video_id, JobType.AUDIO_ENHANCEMENT, asset.id)
        if self._settings.generate_captions:
            await self._open_followup(video_id, JobType.CAPTION_GENERATION, asset.id)

        self._logger.info(
            "Provider asset created",
            extra={
                "video_id": video_id,
                "external_asset_id": asset.id,
                "asset_status": asset.status.value,
            },
        )
        return asset, job

    async def _open_followup(
        self, video_id: str, job_type: JobType, asset_id: str
    ) -> None:
        job = await self._jobs.create(video_id, job_type, external_job_id=asset_id)
        await self._jobs.start(job)

    async def _create_with_retries(
        self,
        video_id: str,
        input_url: str,
        deadline_at: float | None,
    ) -> ProviderAsset:
        loop = asyncio.get_running_loop()
        attempts = self._settings.max_create_attempts
        attempt = 1
        while True:
            try:
                return await self._create_once(video_id, input_url, deadline_at)
            except ProviderTransientError as e:
                backoff = self._settings.retry_backoff_seconds * 2 ** (attempt - 1)
                out_of_time = (
                    deadline_at is not None and loop.time() + backoff >= deadline_at
                )
                self._logger.warning(
                    "Transient error creating provider asset",
                    extra={
                        "video_id": video_id,
                        "attempt": attempt,
                        "max_attempts": attempts,
                        "error": e.reason,
                    },
                )
                if attempt >= attempts or out_of_time:
                    raise
                await asyncio.sleep(backoff)
            attempt += 1

    async def _create_once(
        self, video_id: str, input_url: str, deadline_at: float | None
    ) -> ProviderAsset:
        call = self._provider.create_asset(input_url, passthrough=video_id)
        if deadline_at is None:
            return await call
        remaining = deadline_at - asyncio.get_running_loop().time()
        try:
            return await asyncio.wait_for(call, timeout=max(remaining, 0))
        except TimeoutError as e:
            raise ProviderTransientError("create_asset", "deadline reached") from e
