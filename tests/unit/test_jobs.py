"""
Unit tests for job submission and lookup.
"""

import pytest

from queuectl.constants import JobState
from queuectl.exceptions import AlreadyExistsError, NotFoundError
from queuectl.services import enqueue, get_job, list_by_state


class TestJobService:
    """Tests for enqueue, get_job and list_by_state."""

    async def test_enqueue_defaults(self, db, clock):
        job = await enqueue("echo hi", clock=clock)

        assert job.id
        assert job.state == JobState.PENDING
        assert job.attempts == 0
        assert job.max_retries == 3
        assert job.next_run_at is None
        assert job.worker is None
        assert job.created_at == clock.now()

        stored = await get_job(job.id)
        assert stored.command == "echo hi"

    async def test_enqueue_with_id_and_retries(self, db):
        job = await enqueue("sleep 1", max_retries=1, job_id="custom")

        assert job.id == "custom"
        assert (await get_job("custom")).max_retries == 1

    async def test_enqueue_duplicate_id(self, db):
        await enqueue("true", job_id="same")

        with pytest.raises(AlreadyExistsError):
            await enqueue("false", job_id="same")

        assert (await get_job("same")).command == "true"

    async def test_get_missing(self, db):
        with pytest.raises(NotFoundError):
            await get_job("nope")

    async def test_list_by_state_newest_first(self, db, clock):
        for i in range(3):
            await enqueue(f"echo {i}", job_id=f"job-{i}", clock=clock)
            clock.advance(1)

        jobs = await list_by_state(JobState.PENDING)
        page = await list_by_state(JobState.PENDING, limit=1, offset=1)

        assert [job.id for job in jobs] == ["job-2", "job-1", "job-0"]
        assert [job.id for job in page] == ["job-1"]
        assert await list_by_state(JobState.DEAD) == []
