"""DTOs for operator maintenance operations."""

from pydantic import BaseModel, Field


class ReprocessThumbnailsRequest(BaseModel):
    """One batch of the thumbnail sweep."""

    limit: int | None = Field(
        default=None, ge=1, description="Batch size, capped by configuration"
    )
    cursor: str | None = Field(
        default=None, description="Last record id of the previous batch"
    )


class ReprocessThumbnailsResponse(BaseModel):
    processed: int = 0
    upgraded: int = 0
    unchanged: int = 0
    failed: int = 0
    next_cursor: str | None = Field(
        default=None, description="Null once the sweep is exhausted"
    )
