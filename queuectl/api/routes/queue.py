"""
Queue status and dead letter queue routes.
"""

import logging

from fastapi import APIRouter, Query

from queuectl.clock import utc_now
from queuectl.constants import API_V1_PREFIX
from queuectl.services import list_dead, live_workers, retry_from_dlq, status_summary
from queuectl.types.api import DeadLetterResponse, JobResponse, StatusResponse, WorkerInfo

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_V1_PREFIX, tags=["Queue"])


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Queue status",
    description="Job counts by state and the workers currently alive.",
)
async def get_status() -> StatusResponse:
    counts = await status_summary()
    workers = await live_workers()

    return StatusResponse(
        counts=counts,
        total=sum(counts.values()),
        workers=[WorkerInfo.model_validate(w) for w in workers],
        timestamp=utc_now(),
    )


@router.get(
    "/dlq",
    response_model=DeadLetterResponse,
    summary="List dead jobs",
    description="Jobs that exhausted their retries.",
)
async def get_dead_letters(
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
) -> DeadLetterResponse:
    jobs = await list_dead(limit=limit, offset=offset)
    return DeadLetterResponse(
        count=len(jobs),
        jobs=[JobResponse.model_validate(job) for job in jobs],
    )


@router.post(
    "/dlq/{job_id}/retry",
    response_model=JobResponse,
    summary="Retry a job from DLQ",
    description="Move a dead job back to pending with its attempts reset.",
)
async def retry_dead_letter(job_id: str) -> JobResponse:
    """
    Retry a job from the DLQ.

    Raises:
        NotFoundError: If the job does not exist (404).
        InvalidStateError: If the job is not dead (400).
    """
    job = await retry_from_dlq(job_id)
    return JobResponse.model_validate(job)
