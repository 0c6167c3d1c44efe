"""
Unit tests for the status aggregator.
"""

from queuectl.constants import JobState
from queuectl.db import WorkerRepository, get_session_context
from queuectl.services import live_workers, status_summary


class TestStatusSummary:
    """Tests for status_summary and live_workers."""

    async def test_empty_store(self, db):
        """Test that every state is reported even with no jobs."""
        summary = await status_summary()

        assert summary == {state: 0 for state in JobState}

    async def test_counts_by_state(self, make_job, fetch_job):
        await make_job(job_id="p1")
        await make_job(job_id="p2")
        await make_job(job_id="c1", state=JobState.COMPLETED)
        await make_job(job_id="d1", state=JobState.DEAD)
        before = await fetch_job("p1")

        summary = await status_summary()

        assert summary[JobState.PENDING] == 2
        assert summary[JobState.COMPLETED] == 1
        assert summary[JobState.DEAD] == 1
        assert summary[JobState.PROCESSING] == 0
        assert summary[JobState.FAILED] == 0
        assert (await fetch_job("p1")).updated_at == before.updated_at

    async def test_live_workers_excludes_stale(self, db, clock):
        async with get_session_context() as session:
            repo = WorkerRepository(session)
            await repo.register("stale", "host", 1, clock.now())
            clock.advance(120)
            await repo.register("fresh", "host", 1, clock.now())

        workers = await live_workers(clock=clock)

        assert [w.worker_id for w in workers] == ["fresh"]
