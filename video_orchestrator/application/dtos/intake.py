"""DTOs for upload intake."""

from pydantic import BaseModel, Field

from video_orchestrator.domain.models.thumbnail import ThumbnailTier
from video_orchestrator.domain.models.video import VideoStatus, Visibility
from video_orchestrator.domain.value_objects import ProcessingMode


class UploadVideoRequest(BaseModel):
    """A completed client upload to register and process."""

    storage_key: str = Field(min_length=1, description="Object storage key")
    filename: str = Field(min_length=1, description="Original filename")
    size_bytes: int = Field(gt=0, description="Declared size in bytes")
    mime_type: str = Field(description="Declared MIME type, e.g. video/mp4")
    title: str = Field(min_length=1, max_length=500)
    description: str = Field(default="", max_length=10_000)
    category: str | None = Field(default=None)
    tags: list[str] = Field(default_factory=list)
    visibility: Visibility = Field(default=Visibility.PRIVATE)
    external_asset_id: str | None = Field(
        default=None,
        description="Provider asset id when the client uploaded straight to it",
    )
    client_capture: str | None = Field(
        default=None,
        description="Client-rendered frame as a data:image/...;base64 URL",
    )


class UploadVideoResponse(BaseModel):
    """What is known about an upload when intake returns."""

    id: str
    status: VideoStatus
    processing_mode: ProcessingMode
    thumbnail_ref: str = Field(description="Always present, may be a placeholder")
    thumbnail_tier: ThumbnailTier
    streaming_url: str | None = None
    download_url: str | None = None
    estimated_duration: float | None = Field(
        default=None, description="Duration in seconds, estimated or authoritative"
    )
    metadata_source: str | None = None
    degraded: bool = False
    created: bool = Field(
        default=True, description="False when an existing record was returned"
    )
