"""
Dead letter queue management.

Jobs reach the DLQ only through the finalize transition once their
retries are exhausted. Reviving one puts it back in the queue as if it
were new, keeping its last error and output until the next run replaces
them.
"""

import logging

from queuectl.clock import Clock, get_clock
from queuectl.constants import JobState
from queuectl.db import Job, JobRepository, get_session_context
from queuectl.exceptions import InvalidStateError
from queuectl.observability.metrics import get_metrics
from queuectl.services.jobs import list_by_state

logger = logging.getLogger(__name__)


async def list_dead(limit: int = 100, offset: int = 0) -> list[Job]:
    """List dead jobs, most recently created first."""
    return await list_by_state(JobState.DEAD, limit=limit, offset=offset)


async def retry_from_dlq(job_id: str, clock: Clock | None = None) -> Job:
    """
    Move a dead job back to pending with its attempt counter reset.

    Args:
        job_id: The job id.
        clock: Clock for updated_at.

    Returns:
        The revived job.

    Raises:
        NotFoundError: If no such job exists.
        InvalidStateError: If the job is not dead.
    """
    clock = clock or get_clock()

    async with get_session_context() as session:
        repo = JobRepository(session)
        job = await repo.get(job_id)

        if job.state != JobState.DEAD:
            raise InvalidStateError(
                f"Job {job_id} is not in the DLQ (current state: {job.state.value})"
            )

        revived = await repo.conditional_update(
            job_id,
            JobState.DEAD,
            {
                "state": JobState.PENDING,
                "attempts": 0,
                "next_run_at": None,
                "worker": None,
            },
            now=clock.now(),
        )

    if revived is None:
        raise InvalidStateError(f"Job {job_id} left the DLQ while being retried")

    get_metrics().record_dlq_retry()
    logger.info("Job retried from DLQ", extra={"job_id": job_id})
    return revived
