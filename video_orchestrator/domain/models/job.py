"""Processing job model: one row per background task."""

from datetime import UTC, datetime
from enum import Enum
from typing import Self
from uuid import uuid4

from pydantic import BaseModel, Field


class JobType(str, Enum):
    """Kinds of background work tracked for a video."""

    ASSET_CREATION = "asset_creation"
    AUDIO_ENHANCEMENT = "audio_enhancement"
    CAPTION_GENERATION = "caption_generation"
    THUMBNAIL_REGENERATION = "thumbnail_regeneration"


class JobStatus(str, Enum):
    """Lifecycle of a processing job."""

    PENDING = "pending"  # Dispatched, not started
    RUNNING = "running"  # Started or waiting on the provider
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class ProcessingJob(BaseModel):
    """Tracks a fire-and-forget task so its outcome stays observable."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    video_id: str = Field(description="Record the job works on")
    job_type: JobType
    status: JobStatus = Field(default=JobStatus.PENDING)
    external_job_id: str | None = Field(
        default=None,
        description="Provider handle for the work, e.g. an asset or track id",
    )
    attempts: int = Field(default=0, ge=0)
    last_error: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def start(self, external_job_id: str | None = None) -> Self:
        """Mark the job running and count the attempt."""
        if self.is_terminal:
            return self
        return self.model_copy(
            update={
                "status": JobStatus.RUNNING,
                "attempts": self.attempts + 1,
                "started_at": self.started_at or datetime.now(UTC),
                "external_job_id": external_job_id or self.external_job_id,
            }
        )

    def with_external_id(self, external_job_id: str) -> Self:
        return self.model_copy(update={"external_job_id": external_job_id})

    def succeed(self, external_job_id: str | None = None) -> Self:
        if self.is_terminal:
            return self
        return self.model_copy(
            update={
                "status": JobStatus.SUCCEEDED,
                "completed_at": datetime.now(UTC),
                "external_job_id": external_job_id or self.external_job_id,
                "last_error": None,
            }
        )

    def fail(self, error: str) -> Self:
        if self.is_terminal:
            return self
        return self.model_copy(
            update={
                "status": JobStatus.FAILED,
                "completed_at": datetime.now(UTC),
                "last_error": error,
            }
        )
