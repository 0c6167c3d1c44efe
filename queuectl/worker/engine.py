"""
Worker engine.

A worker repeatedly claims one job, runs its command, and records the
outcome. Workers share nothing but the store; any number of them can run
side by side in one event loop or across processes.
"""

import asyncio
import logging
import time

from queuectl.clock import Clock, get_clock
from queuectl.config import get_settings
from queuectl.constants import RUNNER_FAILURE_EXIT_CODE, SPAN_EXECUTE_JOB, WorkerState
from queuectl.db import Job
from queuectl.exceptions import RunnerError
from queuectl.observability.logging import bind_context, clear_context
from queuectl.observability.metrics import get_metrics
from queuectl.observability.tracing import job_span
from queuectl.types.job import ExecutionOutcome
from queuectl.worker.claim import claim_job
from queuectl.worker.finalize import finalize_job, release_job
from queuectl.worker.runner import CommandRunner, ShellCommandRunner

logger = logging.getLogger(__name__)


class Worker:
    """
    Job worker that polls for and executes jobs, one at a time.

    Loop states: IDLE -> CLAIMING -> EXECUTING -> FINALIZING -> IDLE.
    stop() is cooperative: the loop checks it between iterations, so a
    job that is already executing always runs to completion and is
    finalized before the worker exits.
    """

    def __init__(
        self,
        worker_id: str,
        runner: CommandRunner | None = None,
        poll_interval: float | None = None,
        backoff_base: float | None = None,
        clock: Clock | None = None,
    ):
        """
        Initialize the worker.

        Args:
            worker_id: Unique worker identifier.
            runner: Command runner. Defaults to the shell runner.
            poll_interval: Seconds to wait after finding nothing to claim.
            backoff_base: Base of the retry backoff.
            clock: Clock for eligibility checks and timestamps.
        """
        settings = get_settings()

        self.worker_id = worker_id
        self.poll_interval = poll_interval or settings.poll_interval_seconds
        self.backoff_base = backoff_base or settings.backoff_base

        self._runner = runner or ShellCommandRunner()
        self._clock = clock or get_clock()
        self._state = WorkerState.IDLE
        self._current_job: Job | None = None
        self._stop_event = asyncio.Event()
        self._metrics = get_metrics()

    @property
    def state(self) -> WorkerState:
        if self._stop_event.is_set() and self._state != WorkerState.STOPPED:
            return WorkerState.STOPPING
        return self._state

    @property
    def current_job_id(self) -> str | None:
        return self._current_job.id if self._current_job is not None else None

    async def run(self) -> None:
        """Run the loop until stop() is called."""
        bind_context(worker_id=self.worker_id)
        logger.info(
            "Worker starting",
            extra={"worker_id": self.worker_id, "poll_interval": self.poll_interval}
        )

        while not self._stop_event.is_set():
            try:
                processed = await self.run_once()
            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"worker_id": self.worker_id}
                )
                processed = False

            if not processed:
                await self._idle()

        self._state = WorkerState.STOPPED
        logger.info("Worker stopped", extra={"worker_id": self.worker_id})
        clear_context()

    def stop(self) -> None:
        """Ask the worker to exit after its current iteration."""
        if not self._stop_event.is_set():
            logger.info("Worker stopping", extra={"worker_id": self.worker_id})
        self._stop_event.set()

    async def run_once(self) -> bool:
        """
        Claim, execute, and finalize at most one job.

        Returns:
            True if a job was processed, False if nothing was claimed.
        """
        self._state = WorkerState.CLAIMING
        job = await claim_job(self.worker_id, self._clock)

        if job is None:
            self._state = WorkerState.IDLE
            return False

        self._current_job = job
        try:
            self._state = WorkerState.EXECUTING
            start_time = time.monotonic()
            outcome = await self._execute(job)
            duration = time.monotonic() - start_time

            self._state = WorkerState.FINALIZING
            try:
                finalized = await finalize_job(job, outcome, self.backoff_base, self._clock)
            except Exception:
                await self._release(job)
                raise
        finally:
            self._current_job = None
            self._state = WorkerState.IDLE

        if finalized is not None:
            self._metrics.record_job_finalized(finalized.state.value, duration)

        return True

    async def _execute(self, job: Job) -> ExecutionOutcome:
        """
        Run the job's command.

        Args:
            job: The claimed job.

        Returns:
            The outcome to finalize with.
        """
        attempt = job.attempts + 1
        logger.info(
            "Executing job",
            extra={"job_id": job.id, "worker_id": self.worker_id, "attempt": attempt}
        )

        with job_span(
            SPAN_EXECUTE_JOB,
            job_id=job.id,
            worker_id=self.worker_id,
            attempt=attempt,
        ) as span:

            try:
                result = await self._runner.execute(job.command)
            except RunnerError as e:
                span.set_attribute("exit_code", RUNNER_FAILURE_EXIT_CODE)
                return ExecutionOutcome.runner_failure(str(e))
            except Exception as e:
                logger.exception(
                    f"Runner crashed: {e}",
                    extra={"job_id": job.id, "worker_id": self.worker_id}
                )
                span.set_attribute("exit_code", RUNNER_FAILURE_EXIT_CODE)
                return ExecutionOutcome.runner_failure(f"{type(e).__name__}: {e}")

            span.set_attribute("exit_code", result.exit_code)

        return ExecutionOutcome.from_result(result)

    async def _release(self, job: Job) -> None:
        """Put the job back to pending after its outcome could not be recorded."""
        try:
            await release_job(job, self._clock)
        except Exception as e:
            logger.exception(
                f"Failed to release job: {e}",
                extra={"job_id": job.id, "worker_id": self.worker_id}
            )

    async def _idle(self) -> None:
        """Wait out the poll interval, returning early if stopped."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
        except TimeoutError:
            pass
