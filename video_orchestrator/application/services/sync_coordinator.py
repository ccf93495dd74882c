"""Synchronous processing: drive one asset to completion within a deadline."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from video_orchestrator.application.services.asset_submission import (
    AssetSubmissionService,
)
from video_orchestrator.application.services.jobs import JobTracker
from video_orchestrator.application.services.reconciliation import AssetReconciler
from video_orchestrator.application.services.record_store import VideoRecordStore
from video_orchestrator.commons.infrastructure.blob import BlobNotFoundError
from video_orchestrator.commons.settings.models import ProcessingSettings
from video_orchestrator.commons.telemetry import LogContext, get_logger, timed
from video_orchestrator.domain.models.job import JobType, ProcessingJob
from video_orchestrator.domain.models.video import VideoRecord
from video_orchestrator.infrastructure.processing import (
    ProcessingProviderBase,
    ProviderAsset,
    ProviderRequestError,
    ProviderTransientError,
)


class SyncOutcome(str, Enum):
    """How a synchronous processing attempt ended."""

    READY = "ready"
    ERRORED = "errored"
    STILL_PROCESSING = "still_processing"  # Deadline or transient errors


@dataclass
class SyncProcessingResult:
    """Result of :meth:`SynchronousProcessingCoordinator.process`.

    ``asset`` is None when no provider asset could be created; the caller
    then has to hand ``job`` to the asynchronous path. An ``errored`` outcome
    fails the job only: the caller merges ``errors`` into the record once its
    fallback thumbnail is stored, so a usable one degrades instead of failing.
    """

    outcome: SyncOutcome
    record: VideoRecord
    job: ProcessingJob
    asset: ProviderAsset | None = None
    errors: list[str] = field(default_factory=list)


class SynchronousProcessingCoordinator:
    """Creates or resumes an asset and polls it until ready, errored or deadline.

    Never blocks past the deadline: every sleep and provider call is
    clipped to the remaining time. Cancellation propagates untouched, which
    leaves the asset to the webhook path.
    """

    def __init__(
        self,
        provider: ProcessingProviderBase,
        record_store: VideoRecordStore,
        job_tracker: JobTracker,
        submission: AssetSubmissionService,
        reconciler: AssetReconciler,
        settings: ProcessingSettings,
    ) -> None:
        self._provider = provider
        self._store = record_store
        self._jobs = job_tracker
        self._submission = submission
        self._reconciler = reconciler
        self._settings = settings
        self._logger = get_logger(__name__)

    @timed(level=logging.INFO)
    async def process(
        self,
        video_id: str,
        storage_key: str,
        *,
        existing_asset_id: str | None = None,
        deadline_seconds: float | None = None,
    ) -> SyncProcessingResult:
        """Process one upload synchronously.

        Args:
            video_id: Record to process; must already exist.
            storage_key: Object storage key of the upload.
            existing_asset_id: Resume polling this asset instead of creating one.
            deadline_seconds: Wall-clock budget, defaults to
                ``processing.sync_deadline_seconds``.
        """
        loop = asyncio.get_running_loop()
        budget = deadline_seconds or self._settings.sync_deadline_seconds
        deadline_at = loop.time() + budget

        with LogContext(video_id=video_id, processing_mode="synchronous"):
            job = await self._jobs.create(
                video_id, JobType.ASSET_CREATION, external_job_id=existing_asset_id
            )
            try:
                if existing_asset_id:
                    job = await self._jobs.start(job)
                    asset = await self._fetch_initial(existing_asset_id, deadline_at)
                    if asset is None:
                        return await self._still_processing(video_id, job, None)
                else:
                    asset, job = await self._submission.submit(
                        video_id, storage_key, job, deadline_at=deadline_at
                    )
            except ProviderTransientError as e:
                self._logger.warning(
                    "Provider unreachable, deferring to background processing",
                    extra={"error": e.reason},
                )
                return await self._still_processing(video_id, job, None)
            except (ProviderRequestError, BlobNotFoundError) as e:
                return await self._errored(video_id, job, None, [str(e)])
            except asyncio.CancelledError:
                self._logger.info("Synchronous processing cancelled during submission")
                raise

            with LogContext(external_asset_id=asset.id):
                return await self._poll(video_id, job, asset, deadline_at)

    async def _fetch_initial(
        self, asset_id: str, deadline_at: float
    ) -> ProviderAsset | None:
        remaining = deadline_at - asyncio.get_running_loop().time()
        try:
            return await asyncio.wait_for(
                self._provider.get_asset(asset_id), timeout=max(remaining, 0)
            )
        except TimeoutError:
            return None

    async def _poll(
        self,
        video_id: str,
        job: ProcessingJob,
        asset: ProviderAsset,
        deadline_at: float,
    ) -> SyncProcessingResult:
        loop = asyncio.get_running_loop()
        transient_errors = 0
        polls = 0

        try:
            while True:
                if asset.is_ready:
                    record = await self._reconciler.apply_ready(video_id, asset)
                    job = await self._jobs.succeed(job, external_job_id=asset.id)
                    return SyncProcessingResult(
                        outcome=SyncOutcome.READY, record=record, job=job, asset=asset
                    )
                if asset.is_errored:
                    return await self._errored(video_id, job, asset, asset.errors)

                remaining = deadline_at - loop.time()
                if remaining <= 0:
                    break
                interval = self._settings.poll_interval_seconds
                await asyncio.sleep(min(interval, remaining))

                remaining = deadline_at - loop.time()
                if remaining <= 0:
                    break
                polls += 1
                try:
                    asset = await asyncio.wait_for(
                        self._provider.get_asset(asset.id), timeout=remaining
                    )
                except TimeoutError:
                    break
                except ProviderTransientError as e:
                    transient_errors += 1
                    self._logger.warning(
                        "Transient error polling provider",
                        extra={
                            "error": e.reason,
                            "transient_errors": transient_errors,
                            "max_transient_errors": self._settings.max_transient_errors,
                        },
                    )
                    if transient_errors >= self._settings.max_transient_errors:
                        break
                except ProviderRequestError as e:
                    return await self._errored(video_id, job, asset, [str(e)])
        except asyncio.CancelledError:
            self._logger.info(
                "Synchronous processing cancelled, callbacks will finish the asset",
                extra={"polls": polls},
            )
            raise

        self._logger.info(
            "Synchronous deadline reached, asset still processing",
            extra={"polls": polls, "transient_errors": transient_errors},
        )
        return await self._still_processing(video_id, job, asset)

    async def _still_processing(
        self,
        video_id: str,
        job: ProcessingJob,
        asset: ProviderAsset | None,
    ) -> SyncProcessingResult:
        record = await self._store.require(video_id)
        return SyncProcessingResult(
            outcome=SyncOutcome.STILL_PROCESSING, record=record, job=job, asset=asset
        )

    async def _errored(
        self,
        video_id: str,
        job: ProcessingJob,
        asset: ProviderAsset | None,
        errors: list[str],
    ) -> SyncProcessingResult:
        message = "; ".join(errors) or "Processing provider reported an error"
        job = await self._jobs.fail(job, message)
        record = await self._store.require(video_id)
        return SyncProcessingResult(
            outcome=SyncOutcome.ERRORED,
            record=record,
            job=job,
            asset=asset,
            errors=errors,
        )
