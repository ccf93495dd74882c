"""Upload intake endpoint."""

from fastapi import APIRouter, Response, status

from video_orchestrator.api.dependencies import IntakeServiceDep
from video_orchestrator.application.dtos.intake import (
    UploadVideoRequest,
    UploadVideoResponse,
)
from video_orchestrator.domain.models.video import VideoStatus

router = APIRouter()


@router.post(
    "/videos",
    response_model=UploadVideoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a completed upload",
    description=(
        "Creates the video record and starts processing. Small uploads are "
        "processed while the request waits, up to the synchronous deadline, "
        "and answer 201. Large uploads and anything still processing answer "
        "202 with a placeholder thumbnail; poll GET /videos/{id} for the rest."
    ),
    responses={
        202: {"description": "Accepted, processing continues in the background"},
        415: {"description": "Not a video MIME type"},
        503: {"description": "Record store unavailable, nothing was saved"},
    },
)
async def upload_video(
    request: UploadVideoRequest,
    response: Response,
    service: IntakeServiceDep,
) -> UploadVideoResponse:
    result = await service.submit(request)
    if result.status in (VideoStatus.PENDING, VideoStatus.PROCESSING):
        response.status_code = status.HTTP_202_ACCEPTED
    elif not result.created:
        response.status_code = status.HTTP_200_OK
    return result
