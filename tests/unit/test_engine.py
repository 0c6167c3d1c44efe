"""
Unit tests for the worker engine.
"""

import asyncio
from datetime import datetime

import pytest
from conftest import FakeRunner

import queuectl.worker.engine as engine_module
from queuectl.constants import RUNNER_FAILURE_EXIT_CODE, JobState, WorkerState
from queuectl.exceptions import RunnerError
from queuectl.types.job import CommandResult
from queuectl.worker.engine import Worker
from queuectl.worker.runner import ShellCommandRunner


class TestWorker:
    """Tests for Worker."""

    async def test_run_once_completes_job(self, make_job, fetch_job, clock):
        await make_job(job_id="job-1", command="echo hi")
        runner = FakeRunner(CommandResult(exit_code=0, output="hi\n"))
        worker = Worker("worker-1", runner=runner, poll_interval=0.01, clock=clock)

        processed = await worker.run_once()

        assert processed is True
        assert runner.commands == ["echo hi"]
        assert worker.state == WorkerState.IDLE
        assert worker.current_job_id is None
        stored = await fetch_job("job-1")
        assert stored.state == JobState.COMPLETED
        assert stored.attempts == 1

    async def test_run_once_nothing_to_claim(self, db, clock):
        runner = FakeRunner()
        worker = Worker("worker-1", runner=runner, poll_interval=0.01, clock=clock)

        assert await worker.run_once() is False
        assert runner.commands == []

    async def test_runner_error_becomes_failed_attempt(self, make_job, fetch_job, clock):
        await make_job(job_id="job-1", max_retries=0)
        runner = FakeRunner(RunnerError("Failed to start command: boom"))
        worker = Worker("worker-1", runner=runner, poll_interval=0.01, clock=clock)

        await worker.run_once()

        stored = await fetch_job("job-1")
        assert stored.state == JobState.DEAD
        assert stored.attempts == 1
        assert stored.last_exit_code == RUNNER_FAILURE_EXIT_CODE
        assert stored.last_error == "Failed to start command: boom"

    async def test_unstartable_command_is_retried(self, make_job, fetch_job, clock):
        """Test that a command with a NUL byte goes through the retry path."""
        await make_job(job_id="job-1", command="echo a\x00b", max_retries=1)
        worker = Worker(
            "worker-1",
            runner=ShellCommandRunner(),
            poll_interval=0.01,
            clock=clock,
        )

        assert await worker.run_once() is True

        stored = await fetch_job("job-1")
        assert stored.state == JobState.PENDING
        assert stored.attempts == 1
        assert stored.worker is None
        assert stored.last_exit_code == RUNNER_FAILURE_EXIT_CODE
        assert "null byte" in stored.last_error

    async def test_unexpected_runner_exception_is_failed_attempt(
        self, make_job, fetch_job, clock
    ):
        await make_job(job_id="job-1", max_retries=0)
        runner = FakeRunner(Exception("boom"))
        worker = Worker("worker-1", runner=runner, poll_interval=0.01, clock=clock)

        assert await worker.run_once() is True

        stored = await fetch_job("job-1")
        assert stored.state == JobState.DEAD
        assert stored.attempts == 1
        assert stored.worker is None
        assert stored.last_exit_code == RUNNER_FAILURE_EXIT_CODE
        assert stored.last_error == "Exception: boom"

    async def test_finalize_error_releases_claim(
        self, make_job, fetch_job, clock, monkeypatch: pytest.MonkeyPatch
    ):
        """Test that a job whose outcome cannot be written goes back to pending."""
        await make_job(job_id="job-1")

        async def broken_finalize(*args, **kwargs):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(engine_module, "finalize_job", broken_finalize)
        worker = Worker("worker-1", runner=FakeRunner(), poll_interval=0.01, clock=clock)

        with pytest.raises(RuntimeError, match="store unavailable"):
            await worker.run_once()

        assert worker.current_job_id is None
        stored = await fetch_job("job-1")
        assert stored.state == JobState.PENDING
        assert stored.attempts == 0
        assert stored.worker is None

    async def test_huge_backoff_still_reaches_dead(self, make_job, fetch_job, clock):
        """Test that retry times past year 9999 do not stall the job."""
        await make_job(job_id="job-1", attempts=5, max_retries=6)
        runner = FakeRunner(CommandResult(exit_code=1, output=""))
        worker = Worker(
            "worker-1",
            runner=runner,
            poll_interval=0.01,
            backoff_base=100,
            clock=clock,
        )

        await worker.run_once()

        stored = await fetch_job("job-1")
        assert stored.state == JobState.PENDING
        assert stored.attempts == 6
        assert stored.next_run_at == datetime.max

        clock.current = datetime.max
        await worker.run_once()

        stored = await fetch_job("job-1")
        assert stored.state == JobState.DEAD
        assert stored.attempts == 7

    async def test_failure_uses_backoff_base(self, make_job, fetch_job, clock):
        await make_job(job_id="job-1", max_retries=3)
        runner = FakeRunner(CommandResult(exit_code=2, output=""))
        worker = Worker(
            "worker-1",
            runner=runner,
            poll_interval=0.01,
            backoff_base=3,
            clock=clock,
        )

        await worker.run_once()

        stored = await fetch_job("job-1")
        assert stored.state == JobState.PENDING
        assert (stored.next_run_at - clock.now()).total_seconds() == 3

    async def test_stop_lets_current_job_finish(self, make_job, fetch_job, clock):
        """Test that a stop during execution still finalizes the job."""
        await make_job(job_id="job-1")
        started = asyncio.Event()
        release = asyncio.Event()

        class BlockingRunner:
            async def execute(self, command: str) -> CommandResult:
                started.set()
                await release.wait()
                return CommandResult(exit_code=0, output="done\n")

        worker = Worker("worker-1", runner=BlockingRunner(), poll_interval=0.01, clock=clock)
        task = asyncio.create_task(worker.run())

        await asyncio.wait_for(started.wait(), timeout=5)
        assert worker.current_job_id == "job-1"
        worker.stop()
        assert worker.state == WorkerState.STOPPING

        release.set()
        await asyncio.wait_for(task, timeout=5)

        assert worker.state == WorkerState.STOPPED
        stored = await fetch_job("job-1")
        assert stored.state == JobState.COMPLETED

    async def test_idle_worker_stops_promptly(self, db, clock):
        worker = Worker("worker-1", runner=FakeRunner(), poll_interval=60, clock=clock)
        task = asyncio.create_task(worker.run())
        await asyncio.sleep(0.05)

        worker.stop()
        await asyncio.wait_for(task, timeout=5)

        assert worker.state == WorkerState.STOPPED
