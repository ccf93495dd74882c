"""DTOs for reading records and their jobs."""

from datetime import datetime
from typing import Self

from pydantic import BaseModel

from video_orchestrator.domain.models.job import JobStatus, JobType, ProcessingJob
from video_orchestrator.domain.models.thumbnail import ThumbnailTier
from video_orchestrator.domain.models.video import (
    VideoRecord,
    VideoStatus,
    Visibility,
)
from video_orchestrator.domain.value_objects import MetadataSource, format_duration


class VideoDetailsResponse(BaseModel):
    """Public view of a record for polling clients."""

    id: str
    status: VideoStatus
    title: str
    description: str
    category: str | None
    tags: list[str]
    visibility: Visibility
    original_filename: str
    size_bytes: int
    mime_type: str
    external_asset_id: str | None
    external_status: str | None
    thumbnail_ref: str | None
    thumbnail_tier: ThumbnailTier | None
    streaming_url: str | None
    download_url: str | None
    duration_seconds: float | None
    duration_formatted: str | None
    width: int | None
    height: int | None
    aspect_ratio: str | None
    bitrate: int | None
    quality: str | None
    metadata_source: MetadataSource | None
    captions_ref: str | None
    has_transcript: bool
    audio_enhanced: bool
    degraded: bool
    processing_error: str | None
    created_at: datetime
    updated_at: datetime
    ready_at: datetime | None

    @classmethod
    def from_record(cls, record: VideoRecord) -> Self:
        metadata = record.metadata
        return cls(
            id=record.id,
            status=record.status,
            title=record.title,
            description=record.description,
            category=record.category,
            tags=record.tags,
            visibility=record.visibility,
            original_filename=record.original_filename,
            size_bytes=record.size_bytes,
            mime_type=record.mime_type,
            external_asset_id=record.external_asset_id,
            external_status=record.external_status,
            thumbnail_ref=record.thumbnail_ref,
            thumbnail_tier=record.thumbnail_tier,
            streaming_url=record.streaming_url,
            download_url=record.download_url,
            duration_seconds=record.duration_seconds,
            duration_formatted=(
                format_duration(record.duration_seconds)
                if record.duration_seconds is not None
                else None
            ),
            width=record.width,
            height=record.height,
            aspect_ratio=record.aspect_ratio,
            bitrate=record.bitrate,
            quality=metadata.quality_label if metadata else None,
            metadata_source=record.metadata_source,
            captions_ref=record.captions_ref,
            has_transcript=record.transcript_text is not None,
            audio_enhanced=record.audio_enhanced,
            degraded=record.degraded,
            processing_error=record.processing_error,
            created_at=record.created_at,
            updated_at=record.updated_at,
            ready_at=record.ready_at,
        )


class JobResponse(BaseModel):
    id: str
    job_type: JobType
    status: JobStatus
    external_job_id: str | None
    attempts: int
    last_error: str | None
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None

    @classmethod
    def from_job(cls, job: ProcessingJob) -> Self:
        return cls.model_validate(job.model_dump())


class JobListResponse(BaseModel):
    video_id: str
    jobs: list[JobResponse]
