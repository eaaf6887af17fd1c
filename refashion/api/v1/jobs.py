"""
Generation job API endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from refashion.api.deps import get_fal_client, get_job_service
from refashion.models.job import JobStatus
from refashion.schemas.job import (
    JobListResponse,
    JobResponse,
    JobStatusPayload,
    JobSubmissionResponse,
    VideoJobRequest,
)
from refashion.services.fal_client import FalQueueClient
from refashion.services.job_service import JobService

router = APIRouter()


@router.post(
    "/video",
    response_model=JobSubmissionResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit video job",
    description="Submit an image-to-video job; completion arrives by webhook",
)
async def submit_video_job(
    request: VideoJobRequest,
    job_service: JobService = Depends(get_job_service),
    fal_client: FalQueueClient = Depends(get_fal_client),
):
    job = await job_service.submit_video_job(request, fal_client)
    return JobSubmissionResponse(job_id=job.id, status=job.status)


@router.get(
    "/{job_id}/status",
    response_model=JobStatusPayload,
    response_model_by_alias=True,
    summary="Get job status",
    description="Polling endpoint for job progress",
)
def get_job_status(
    job_id: str,
    job_service: JobService = Depends(get_job_service),
):
    return job_service.get_status(job_id)


@router.get(
    "",
    response_model=JobListResponse,
    summary="List jobs",
)
def list_jobs(
    username: Optional[str] = Query(None, description="Filter by owner"),
    status_filter: Optional[JobStatus] = Query(None, alias="status", description="Filter by status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    job_service: JobService = Depends(get_job_service),
):
    jobs, total = job_service.job_repository.list_jobs(
        username=username, status=status_filter, limit=limit, offset=offset
    )
    return JobListResponse(
        items=[JobResponse.model_validate(job) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
    )
