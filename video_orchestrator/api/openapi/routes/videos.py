"""Video status, jobs and operator retry endpoints."""

from fastapi import APIRouter, status

from video_orchestrator.api.dependencies import IntakeServiceDep
from video_orchestrator.application.dtos.videos import (
    JobListResponse,
    JobResponse,
    VideoDetailsResponse,
)

router = APIRouter()


@router.get(
    "/videos/{video_id}",
    response_model=VideoDetailsResponse,
    summary="Get video status",
    description="Current record fields, for clients polling until ready.",
)
async def get_video(video_id: str, service: IntakeServiceDep) -> VideoDetailsResponse:
    record = await service.get_status(video_id)
    return VideoDetailsResponse.from_record(record)


@router.get(
    "/videos/{video_id}/jobs",
    response_model=JobListResponse,
    summary="List processing jobs",
    description="Background jobs dispatched for the video, oldest first.",
)
async def list_jobs(video_id: str, service: IntakeServiceDep) -> JobListResponse:
    jobs = await service.list_jobs(video_id)
    return JobListResponse(
        video_id=video_id, jobs=[JobResponse.from_job(job) for job in jobs]
    )


@router.post(
    "/videos/{video_id}/retry",
    response_model=VideoDetailsResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Retry a failed video",
    description="Resets a failed record and processes it again in the background.",
    responses={409: {"description": "The video has not failed"}},
)
async def retry_video(video_id: str, service: IntakeServiceDep) -> VideoDetailsResponse:
    record = await service.retry(video_id)
    return VideoDetailsResponse.from_record(record)
