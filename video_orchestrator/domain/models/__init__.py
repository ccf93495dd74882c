"""Domain models."""

from video_orchestrator.domain.models.job import JobStatus, JobType, ProcessingJob
from video_orchestrator.domain.models.thumbnail import Thumbnail, ThumbnailTier
from video_orchestrator.domain.models.video import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    VideoRecord,
    VideoStatus,
    Visibility,
    can_transition,
)
from video_orchestrator.domain.models.webhook_event import (
    WebhookEvent,
    WebhookOutcome,
)

__all__ = [
    # Video
    "VideoRecord",
    "VideoStatus",
    "Visibility",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "can_transition",
    # Thumbnails
    "Thumbnail",
    "ThumbnailTier",
    # Jobs
    "ProcessingJob",
    "JobType",
    "JobStatus",
    # Webhook ledger
    "WebhookEvent",
    "WebhookOutcome",
]
