"""
Integration tests for workers running through the pool.
"""

import asyncio
from collections.abc import AsyncGenerator, Callable
from datetime import timedelta

import pytest
import pytest_asyncio

from queuectl.constants import JobState
from queuectl.db import Job
from queuectl.exceptions import InvalidStateError, ValidationError
from queuectl.services import enqueue, live_workers
from queuectl.worker.pool import WorkerPool, request_stop_all


async def wait_for_job(
    fetch_job,
    job_id: str,
    predicate: Callable[[Job], bool],
    timeout: float = 10.0,
) -> Job:
    """Poll the store until the job satisfies predicate."""
    deadline = asyncio.get_running_loop().time() + timeout
    while True:
        job = await fetch_job(job_id)
        if predicate(job):
            return job
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(f"Job {job_id} stuck in {job.state} (attempts={job.attempts})")
        await asyncio.sleep(0.02)


class TestWorkerPool:
    """End-to-end tests: enqueue, run through the pool, observe the store."""

    @pytest_asyncio.fixture
    async def pool(self, db, clock) -> AsyncGenerator[WorkerPool]:
        pool = WorkerPool(clock=clock)
        yield pool
        await pool.stop()

    async def test_echo_completes(self, pool: WorkerPool, fetch_job, clock):
        job = await enqueue("echo hi", clock=clock)
        await pool.start(1)

        done = await wait_for_job(fetch_job, job.id, lambda j: j.state == JobState.COMPLETED)

        assert done.attempts == 1
        assert done.last_exit_code == 0
        assert done.output == "hi\n"
        assert done.worker is None

    async def test_failure_retries_then_dies(self, pool: WorkerPool, fetch_job, clock):
        """Test exit 1 with max_retries=1: one backoff, then the DLQ."""
        job = await enqueue("exit 1", max_retries=1, clock=clock)
        await pool.start(1)

        retrying = await wait_for_job(
            fetch_job,
            job.id,
            lambda j: j.state == JobState.PENDING and j.attempts == 1,
        )
        assert retrying.next_run_at == clock.now() + timedelta(seconds=2)
        assert retrying.last_exit_code == 1

        # Still waiting out the backoff
        await asyncio.sleep(0.2)
        assert (await fetch_job(job.id)).attempts == 1

        clock.advance(2)
        dead = await wait_for_job(fetch_job, job.id, lambda j: j.state == JobState.DEAD)

        assert dead.attempts == 2
        assert dead.next_run_at is None
        assert dead.last_error == "exited with code 1"

    async def test_many_workers_run_each_job_once(self, pool: WorkerPool, fetch_job, clock):
        jobs = [await enqueue(f"echo {i}", clock=clock) for i in range(10)]
        await pool.start(4)

        for job in jobs:
            done = await wait_for_job(fetch_job, job.id, lambda j: j.state == JobState.COMPLETED)
            assert done.attempts == 1

    async def test_stop_drains_in_flight_job(self, pool: WorkerPool, fetch_job, clock):
        job = await enqueue("sleep 0.3; echo done", clock=clock)
        await pool.start(1)
        await wait_for_job(fetch_job, job.id, lambda j: j.state == JobState.PROCESSING)

        await pool.stop()

        stored = await fetch_job(job.id)
        assert stored.state == JobState.COMPLETED
        assert stored.output == "done\n"
        assert not pool.is_running
        assert await live_workers(clock=clock) == []

    async def test_registers_heartbeats(self, pool: WorkerPool, clock):
        worker_ids = await pool.start(3)

        workers = await live_workers(clock=clock)

        assert sorted(w.worker_id for w in workers) == sorted(worker_ids)
        assert len(set(worker_ids)) == 3

    async def test_stop_requested_through_store(self, pool: WorkerPool, clock):
        await pool.start(2)

        assert await request_stop_all() == 2
        await asyncio.wait_for(pool.wait(), timeout=5)

        assert not pool.is_running
        assert await live_workers(clock=clock) == []

    async def test_start_twice_rejected(self, pool: WorkerPool):
        await pool.start(1)

        with pytest.raises(InvalidStateError):
            await pool.start(1)

    @pytest.mark.parametrize("count", [0, 11])
    async def test_count_bounds(self, pool: WorkerPool, count: int):
        with pytest.raises(ValidationError):
            await pool.start(count)
