"""
Job submission and lookup routes.
"""

import logging

from fastapi import APIRouter, Query, status

from queuectl.constants import API_V1_PREFIX, JobState
from queuectl.services import enqueue, get_job, list_by_state
from queuectl.types.api import EnqueueRequest, JobListResponse, JobResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/jobs", tags=["Jobs"])


@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enqueue a job",
    description="Add a shell command to the queue. The job starts pending and eligible.",
)
async def create_job(request: EnqueueRequest) -> JobResponse:
    """
    Enqueue a new job.

    Args:
        request: Job creation request.

    Returns:
        JobResponse for the new pending job.
    """
    job = await enqueue(
        command=request.command,
        max_retries=request.max_retries,
        job_id=request.id,
    )
    return JobResponse.model_validate(job)


@router.get(
    "",
    response_model=JobListResponse,
    summary="List jobs",
    description="List jobs in one state, newest first.",
)
async def list_jobs(
    state: JobState = Query(default=JobState.PENDING),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> JobListResponse:
    """
    List jobs by state.

    Args:
        state: State filter.
        page: Page number (1-indexed).
        page_size: Number of items per page.

    Returns:
        JobListResponse with one page of jobs.
    """
    offset = (page - 1) * page_size
    # One extra row tells whether another page exists
    jobs = await list_by_state(state, limit=page_size + 1, offset=offset)

    return JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs[:page_size]],
        state=state,
        page=page,
        page_size=page_size,
        has_next=len(jobs) > page_size,
    )


@router.get(
    "/{job_id}",
    response_model=JobResponse,
    summary="Get job details",
    description="Get detailed information about a specific job.",
)
async def get_job_details(job_id: str) -> JobResponse:
    """
    Get job details by ID.

    Raises:
        NotFoundError: If the job does not exist (rendered as 404).
    """
    job = await get_job(job_id)
    return JobResponse.model_validate(job)
