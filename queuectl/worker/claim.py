"""
Claim protocol.

A claim picks the oldest eligible pending job and moves it to processing
with a compare-and-set on its state. If another worker wins the race for
that row, the claim reports nothing for this round instead of trying the
next candidate; the worker simply polls again.
"""

import logging

from queuectl.clock import Clock, get_clock
from queuectl.constants import SPAN_CLAIM_JOB, ClaimOutcome, JobState
from queuectl.db import Job, JobRepository, get_session_context
from queuectl.observability.metrics import get_metrics
from queuectl.observability.tracing import job_span

logger = logging.getLogger(__name__)


async def claim_job(worker_id: str, clock: Clock | None = None) -> Job | None:
    """
    Claim one eligible job for a worker.

    Args:
        worker_id: The claiming worker.
        clock: Clock for the eligibility check and updated_at.

    Returns:
        The claimed job, now processing and owned by worker_id, or None if
        nothing was eligible or the candidate was taken concurrently.
    """
    clock = clock or get_clock()

    with job_span(SPAN_CLAIM_JOB, worker_id=worker_id) as span:
        now = clock.now()

        async with get_session_context() as session:
            repo = JobRepository(session)
            candidate = await repo.find_eligible(now)

            if candidate is None:
                job = None
                outcome = ClaimOutcome.EMPTY
            else:
                job = await repo.conditional_update(
                    candidate.id,
                    JobState.PENDING,
                    {
                        "state": JobState.PROCESSING,
                        "worker": worker_id,
                        "next_run_at": None,
                    },
                    now=now,
                )
                outcome = ClaimOutcome.CLAIMED if job is not None else ClaimOutcome.CONFLICT

        span.set_attribute("outcome", outcome.value)

    get_metrics().record_claim(worker_id, outcome.value)

    if outcome == ClaimOutcome.CLAIMED:
        logger.info(
            "Claimed job",
            extra={"job_id": job.id, "worker_id": worker_id, "attempt": job.attempts + 1}
        )
    elif outcome == ClaimOutcome.CONFLICT:
        logger.debug(
            "Lost claim race",
            extra={"job_id": candidate.id, "worker_id": worker_id}
        )

    return job
