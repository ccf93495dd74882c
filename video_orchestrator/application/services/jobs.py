"""Processing job tracking."""

from typing import Any

from video_orchestrator.commons.infrastructure.documentdb import (
    DocumentDBBase,
    DocumentDBUnavailableError,
)
from video_orchestrator.commons.settings.models import Settings
from video_orchestrator.commons.telemetry import get_logger
from video_orchestrator.domain.exceptions import RecordStoreUnavailableException
from video_orchestrator.domain.models.job import JobStatus, JobType, ProcessingJob

_OPEN_STATUSES = [JobStatus.PENDING.value, JobStatus.RUNNING.value]


class JobTracker:
    """Persists :class:`ProcessingJob` rows for background work.

    A job row is written before its task is dispatched, so work that nobody
    awaits still leaves a queryable trail.
    """

    def __init__(self, document_db: DocumentDBBase, settings: Settings) -> None:
        self._db = document_db
        self._collection = settings.document_db.collections.processing_jobs
        self._logger = get_logger(__name__)

    async def ensure_indexes(self) -> None:
        try:
            await self._db.create_index(
                self._collection, [("video_id", 1), ("created_at", 1)], name="video"
            )
            await self._db.create_index(
                self._collection, [("external_job_id", 1)], name="external_job"
            )
        except DocumentDBUnavailableError as e:
            raise RecordStoreUnavailableException("ensure_job_indexes", e.reason) from e

    async def create(
        self,
        video_id: str,
        job_type: JobType,
        external_job_id: str | None = None,
    ) -> ProcessingJob:
        job = ProcessingJob(
            video_id=video_id, job_type=job_type, external_job_id=external_job_id
        )
        try:
            await self._db.insert(self._collection, job.model_dump())
        except DocumentDBUnavailableError as e:
            raise RecordStoreUnavailableException("create_job", e.reason) from e
        self._logger.info(
            "Processing job dispatched",
            extra={"video_id": video_id, "job_id": job.id, "job_type": job_type.value},
        )
        return job

    async def _save(self, job: ProcessingJob) -> ProcessingJob:
        try:
            await self._db.update(
                self._collection, job.id, job.model_dump(exclude={"id"})
            )
        except DocumentDBUnavailableError as e:
            raise RecordStoreUnavailableException("save_job", e.reason) from e
        return job

    async def start(
        self, job: ProcessingJob, external_job_id: str | None = None
    ) -> ProcessingJob:
        return await self._save(job.start(external_job_id))

    async def attach_external_id(
        self, job: ProcessingJob, external_job_id: str
    ) -> ProcessingJob:
        return await self._save(job.with_external_id(external_job_id))

    async def succeed(
        self, job: ProcessingJob, external_job_id: str | None = None
    ) -> ProcessingJob:
        done = await self._save(job.succeed(external_job_id))
        self._logger.info(
            "Processing job succeeded",
            extra={
                "video_id": job.video_id,
                "job_id": job.id,
                "job_type": job.job_type.value,
            },
        )
        return done

    async def fail(self, job: ProcessingJob, error: str) -> ProcessingJob:
        failed = await self._save(job.fail(error))
        self._logger.warning(
            "Processing job failed",
            extra={
                "video_id": job.video_id,
                "job_id": job.id,
                "job_type": job.job_type.value,
                "error": error,
            },
        )
        return failed

    async def list_for_video(self, video_id: str) -> list[ProcessingJob]:
        try:
            documents = await self._db.find(
                self._collection,
                {"video_id": video_id},
                limit=200,
                sort=[("created_at", 1)],
            )
        except DocumentDBUnavailableError as e:
            raise RecordStoreUnavailableException("list_jobs", e.reason) from e
        return [ProcessingJob.model_validate(d) for d in documents]

    async def find_open(
        self, video_id: str, job_types: list[JobType] | None = None
    ) -> list[ProcessingJob]:
        """Jobs of a video that are still pending or running."""
        filters: dict[str, Any] = {
            "video_id": video_id,
            "status": {"$in": _OPEN_STATUSES},
        }
        if job_types:
            filters["job_type"] = {"$in": [t.value for t in job_types]}
        try:
            documents = await self._db.find(self._collection, filters)
        except DocumentDBUnavailableError as e:
            raise RecordStoreUnavailableException("find_open_jobs", e.reason) from e
        return [ProcessingJob.model_validate(d) for d in documents]

    async def succeed_open(self, video_id: str, job_type: JobType) -> int:
        """Mark every open job of ``job_type`` succeeded; returns how many."""
        jobs = await self.find_open(video_id, [job_type])
        for job in jobs:
            await self.succeed(job)
        return len(jobs)

    async def fail_open(
        self, video_id: str, error: str, job_types: list[JobType] | None = None
    ) -> int:
        """Mark open jobs failed (all types unless ``job_types`` is given)."""
        jobs = await self.find_open(video_id, job_types)
        for job in jobs:
            await self.fail(job, error)
        return len(jobs)
