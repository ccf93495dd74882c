"""Data Transfer Objects for application layer."""

from video_orchestrator.application.dtos.intake import (
    UploadVideoRequest,
    UploadVideoResponse,
)
from video_orchestrator.application.dtos.maintenance import (
    ReprocessThumbnailsRequest,
    ReprocessThumbnailsResponse,
)
from video_orchestrator.application.dtos.videos import (
    JobListResponse,
    JobResponse,
    VideoDetailsResponse,
)

__all__ = [
    # Intake DTOs
    "UploadVideoRequest",
    "UploadVideoResponse",
    # Maintenance DTOs
    "ReprocessThumbnailsRequest",
    "ReprocessThumbnailsResponse",
    # Read DTOs
    "VideoDetailsResponse",
    "JobResponse",
    "JobListResponse",
]
