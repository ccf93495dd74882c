"""Operator maintenance endpoints."""

from fastapi import APIRouter

from video_orchestrator.api.dependencies import ReprocessingServiceDep
from video_orchestrator.application.dtos.maintenance import (
    ReprocessThumbnailsRequest,
    ReprocessThumbnailsResponse,
)

router = APIRouter()


@router.post(
    "/maintenance/thumbnails/reprocess",
    response_model=ReprocessThumbnailsResponse,
    summary="Reprocess placeholder thumbnails",
    description=(
        "Runs one bounded batch of the thumbnail sweep. Call again with "
        "next_cursor until it is null."
    ),
)
async def reprocess_thumbnails(
    request: ReprocessThumbnailsRequest,
    service: ReprocessingServiceDep,
) -> ReprocessThumbnailsResponse:
    return await service.run_batch(limit=request.limit, cursor=request.cursor)
