"""
Worker pool supervisor.

The pool owns the worker handles of this process and keeps one heartbeat
row per worker in the store. The rows tell other processes which workers
are alive, carry a stop flag so another process can ask the pool to shut
down, and let the reaper recover jobs from workers that died mid-job.
"""

import asyncio
import logging
import os
import socket
from contextlib import suppress

from queuectl.clock import Clock, get_clock
from queuectl.config import get_settings
from queuectl.constants import MAX_WORKERS, MIN_WORKERS
from queuectl.db import WorkerRepository, get_session_context
from queuectl.exceptions import InvalidStateError, ValidationError
from queuectl.observability.metrics import get_metrics
from queuectl.reaper.main import Reaper
from queuectl.services.config import get_config
from queuectl.worker.engine import Worker
from queuectl.worker.runner import CommandRunner

logger = logging.getLogger(__name__)

# Process-wide pool used by the API
_pool: "WorkerPool | None" = None


class WorkerPool:
    """
    Runs N workers as asyncio tasks and tracks their liveness.

    Features:
    - Bounded worker count
    - Heartbeat rows refreshed on an interval
    - Cooperative stop that drains in-flight jobs, local or requested
      through the store
    - Stale worker cleanup on start
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        clock: Clock | None = None,
        heartbeat_interval: float | None = None,
    ):
        settings = get_settings()

        self.heartbeat_interval = heartbeat_interval or settings.heartbeat_interval_seconds
        self._runner = runner
        self._clock = clock or get_clock()
        self._workers: list[Worker] = []
        self._tasks: list[asyncio.Task] = []
        self._heartbeat_task: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self._metrics = get_metrics()

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    @property
    def workers(self) -> list[Worker]:
        return list(self._workers)

    @property
    def worker_ids(self) -> list[str]:
        return [w.worker_id for w in self._workers]

    async def start(self, count: int) -> list[str]:
        """
        Start count workers.

        Args:
            count: Number of workers, between 1 and the configured maximum.

        Returns:
            The ids of the started workers.

        Raises:
            ValidationError: If count is out of bounds.
            InvalidStateError: If the pool is already running.
        """
        max_workers = min(get_settings().max_workers, MAX_WORKERS)
        if not MIN_WORKERS <= count <= max_workers:
            raise ValidationError(
                f"Worker count must be between {MIN_WORKERS} and {max_workers}"
            )
        if self.is_running:
            raise InvalidStateError("Worker pool is already running")

        # Workers that exited on a store-side stop still need their rows removed
        await self._cleanup()

        # Workers left behind by a crashed process would otherwise hold
        # their jobs forever.
        await Reaper(clock=self._clock).run_once()

        config = await get_config()
        hostname = socket.gethostname()
        pid = os.getpid()

        self._workers = [
            Worker(
                worker_id=f"worker-{hostname}-{pid}-{i}",
                runner=self._runner,
                poll_interval=config.poll_interval_seconds,
                backoff_base=config.backoff_base,
                clock=self._clock,
            )
            for i in range(count)
        ]

        now = self._clock.now()
        async with get_session_context() as session:
            repo = WorkerRepository(session)
            for worker in self._workers:
                await repo.register(worker.worker_id, hostname, pid, now)

        self._tasks = [
            asyncio.create_task(worker.run(), name=worker.worker_id)
            for worker in self._workers
        ]
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        self._metrics.set_active_workers(count)

        logger.info(
            f"Started {count} workers",
            extra={"pid": pid, "workers": self.worker_ids}
        )
        return self.worker_ids

    async def stop(self) -> None:
        """Signal every worker to stop and wait for in-flight jobs to drain."""
        if not self._workers:
            return

        logger.info("Stopping worker pool", extra={"workers": self.worker_ids})
        for worker in self._workers:
            worker.stop()
        await self.wait()

    async def wait(self) -> None:
        """Wait until all workers have exited, then deregister them."""
        tasks = list(self._tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self._cleanup()

    async def heartbeat(self) -> bool:
        """
        Refresh every worker's heartbeat row.

        Returns:
            True if a stop was requested through the store.
        """
        hostname = socket.gethostname()
        pid = os.getpid()
        now = self._clock.now()
        stop_requested = False

        async with get_session_context() as session:
            repo = WorkerRepository(session)
            for worker in self._workers:
                flag = await repo.beat(worker.worker_id, worker.current_job_id, now)
                if flag is None:
                    # Reaped while still alive, e.g. after a long pause
                    logger.warning(
                        "Heartbeat row missing, re-registering",
                        extra={"worker_id": worker.worker_id}
                    )
                    await repo.register(worker.worker_id, hostname, pid, now)
                elif flag:
                    stop_requested = True

        return stop_requested

    async def _heartbeat_loop(self) -> None:
        """Refresh heartbeats until the workers exit or a stop is requested."""
        while self.is_running:
            await asyncio.sleep(self.heartbeat_interval)

            try:
                stop_requested = await self.heartbeat()
            except Exception as e:
                logger.exception(f"Error in heartbeat loop: {e}")
                continue

            if stop_requested:
                logger.info("Stop requested through the store")
                for worker in self._workers:
                    worker.stop()
                return

    async def _cleanup(self) -> None:
        async with self._lock:
            if not self._workers:
                return

            heartbeat_task, self._heartbeat_task = self._heartbeat_task, None
            if heartbeat_task is not None:
                heartbeat_task.cancel()
                with suppress(asyncio.CancelledError):
                    await heartbeat_task

            worker_ids = self.worker_ids
            self._workers = []
            self._tasks = []

            async with get_session_context() as session:
                await WorkerRepository(session).deregister(worker_ids)

            self._metrics.set_active_workers(0)
            logger.info("Worker pool stopped", extra={"workers": worker_ids})


async def request_stop_all() -> int:
    """
    Ask every registered worker, in any process, to stop.

    Pools notice on their next heartbeat.

    Returns:
        Number of workers flagged.
    """
    async with get_session_context() as session:
        count = await WorkerRepository(session).request_stop_all()

    logger.info(f"Requested stop for {count} workers")
    return count


def get_worker_pool() -> WorkerPool:
    """
    Get the process-wide worker pool, creating it on first use.

    Returns:
        WorkerPool: The pool instance.
    """
    global _pool
    if _pool is None:
        _pool = WorkerPool()
    return _pool
