"""
Job submission and lookup.
"""

import logging
from uuid import uuid4

from queuectl.clock import Clock, get_clock
from queuectl.constants import JobState
from queuectl.db import Job, JobRepository, get_session_context
from queuectl.observability.metrics import get_metrics
from queuectl.services.config import get_value

logger = logging.getLogger(__name__)


async def enqueue(
    command: str,
    max_retries: int | None = None,
    job_id: str | None = None,
    clock: Clock | None = None,
) -> Job:
    """
    Persist a new pending job.

    Args:
        command: Shell command to run.
        max_retries: Retries after the first attempt. Defaults to the
            configured max_retries.
        job_id: Job id. A uuid4 is generated when omitted.
        clock: Clock for timestamps.

    Returns:
        The new job, pending and immediately eligible.

    Raises:
        AlreadyExistsError: If job_id is taken.
    """
    clock = clock or get_clock()
    if max_retries is None:
        max_retries = await get_value("max_retries")

    now = clock.now()
    job = Job(
        id=job_id or str(uuid4()),
        command=command,
        state=JobState.PENDING,
        attempts=0,
        max_retries=max_retries,
        created_at=now,
        updated_at=now,
        next_run_at=None,
    )

    async with get_session_context() as session:
        await JobRepository(session).insert(job)

    get_metrics().record_job_enqueued()
    logger.info(
        "Job enqueued",
        extra={"job_id": job.id, "max_retries": max_retries}
    )
    return job


async def get_job(job_id: str) -> Job:
    """
    Get a job by id.

    Raises:
        NotFoundError: If no such job exists.
    """
    async with get_session_context() as session:
        return await JobRepository(session).get(job_id)


async def list_by_state(
    state: JobState,
    limit: int = 20,
    offset: int = 0,
) -> list[Job]:
    """
    List jobs in one state, newest first.

    Args:
        state: State to filter on.
        limit: Page size.
        offset: Number of jobs to skip.

    Returns:
        One page of jobs.
    """
    async with get_session_context() as session:
        repo = JobRepository(session)
        return [
            job
            async for job in repo.query(state, descending=True, limit=limit, offset=offset)
        ]
