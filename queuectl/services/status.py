"""
Read-only rollups of queue state.
"""

from datetime import timedelta

from queuectl.clock import Clock, get_clock
from queuectl.config import get_settings
from queuectl.constants import JobState
from queuectl.db import JobRepository, WorkerHeartbeat, WorkerRepository, get_session_context


async def status_summary() -> dict[JobState, int]:
    """
    Count jobs per state.

    Returns:
        A count for every state, zero for states with no jobs.
    """
    async with get_session_context() as session:
        counts = await JobRepository(session).count_by_state()

    return {state: counts.get(state, 0) for state in JobState}


async def live_workers(clock: Clock | None = None) -> list[WorkerHeartbeat]:
    """Workers whose heartbeat is fresher than the stale threshold."""
    clock = clock or get_clock()
    cutoff = clock.now() - timedelta(seconds=get_settings().worker_stale_after_seconds)

    async with get_session_context() as session:
        return await WorkerRepository(session).list_live(cutoff)
