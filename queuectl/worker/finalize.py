"""
Finalize transition: record the outcome of one execution.
"""

import logging

from queuectl.clock import Clock, get_clock
from queuectl.constants import SPAN_FINALIZE_JOB, JobState
from queuectl.db import Job, JobRepository, get_session_context
from queuectl.observability.metrics import get_metrics
from queuectl.observability.tracing import job_span
from queuectl.types.job import ExecutionOutcome
from queuectl.worker.backoff import next_run_at

logger = logging.getLogger(__name__)


def _transition_fields(
    job: Job,
    outcome: ExecutionOutcome,
    backoff_base: float,
    clock: Clock,
) -> dict:
    attempts = job.attempts + 1
    fields = {
        "attempts": attempts,
        "worker": None,
        "last_exit_code": outcome.exit_code,
        "output": outcome.output,
    }

    if outcome.success:
        fields.update(state=JobState.COMPLETED, next_run_at=None)
    elif attempts > job.max_retries:
        fields.update(state=JobState.DEAD, next_run_at=None, last_error=outcome.error)
    else:
        fields.update(
            state=JobState.PENDING,
            next_run_at=next_run_at(attempts, backoff_base, clock.now()),
            last_error=outcome.error,
        )
    return fields


async def finalize_job(
    job: Job,
    outcome: ExecutionOutcome,
    backoff_base: float,
    clock: Clock | None = None,
) -> Job | None:
    """
    Move a processing job to completed, pending (retry), or dead.

    The write only applies while the job is still processing and owned by
    the worker that claimed it.

    Args:
        job: The job as returned by the claim.
        outcome: Result of the execution.
        backoff_base: Base of the retry backoff.
        clock: Clock for next_run_at and updated_at.

    Returns:
        The updated job, or None if the write was rejected.
    """
    clock = clock or get_clock()
    fields = _transition_fields(job, outcome, backoff_base, clock)

    with job_span(SPAN_FINALIZE_JOB, job_id=job.id, state=fields["state"].value):

        async with get_session_context() as session:
            updated = await JobRepository(session).conditional_update(
                job.id,
                JobState.PROCESSING,
                fields,
                now=clock.now(),
                owner=job.worker,
            )

    if updated is None:
        # Only the owning worker writes a processing row, so this means the
        # row was changed behind its back.
        get_metrics().record_finalize_conflict()
        logger.error(
            "Finalize rejected: job is no longer processing for this worker",
            extra={"job_id": job.id, "worker_id": job.worker}
        )
        return None

    extra = {
        "job_id": updated.id,
        "attempt": updated.attempts,
        "exit_code": outcome.exit_code,
    }
    if updated.state == JobState.COMPLETED:
        logger.info("Job completed", extra=extra)
    elif updated.state == JobState.DEAD:
        logger.warning(
            f"Job moved to DLQ after {updated.attempts} attempts",
            extra={**extra, "error": outcome.error}
        )
    else:
        logger.info(
            "Job scheduled for retry",
            extra={**extra, "next_run_at": updated.next_run_at.isoformat()}
        )

    return updated


async def release_job(job: Job, clock: Clock | None = None) -> Job | None:
    """
    Hand a claimed job back to pending without counting the attempt.

    Used when the outcome of an execution could not be recorded. Like
    finalize, it only applies while the claiming worker still owns the row.

    Returns:
        The released job, or None if the row had already moved on.
    """
    clock = clock or get_clock()

    async with get_session_context() as session:
        released = await JobRepository(session).conditional_update(
            job.id,
            JobState.PROCESSING,
            {"state": JobState.PENDING, "worker": None, "next_run_at": None},
            now=clock.now(),
            owner=job.worker,
        )

    if released is not None:
        logger.warning(
            "Released job after failed finalize",
            extra={"job_id": job.id, "worker_id": job.worker}
        )
    return released
