"""
Reaper for workers that died mid-job.

A worker that crashes while processing leaves its job in processing with
its id in the worker column, and no other worker can claim it. The reaper
finds workers whose heartbeat stopped moving, returns their jobs to
pending, and removes their heartbeat rows. The interrupted attempt is not
counted.
"""

import asyncio
import logging
import signal
from datetime import timedelta

from queuectl.clock import Clock, get_clock
from queuectl.config import get_settings
from queuectl.constants import JobState
from queuectl.db import JobRepository, WorkerRepository, close_db, get_session_context, init_db
from queuectl.observability.logging import setup_logging
from queuectl.observability.metrics import get_metrics

logger = logging.getLogger(__name__)


class Reaper:
    """
    Recovers jobs held by workers with stale heartbeats.

    Runs periodically to:
    1. Find heartbeat rows older than the stale threshold
    2. Return their processing jobs to pending
    3. Delete the stale rows
    """

    def __init__(
        self,
        interval_seconds: float | None = None,
        stale_after_seconds: float | None = None,
        clock: Clock | None = None,
    ):
        """
        Initialize the reaper.

        Args:
            interval_seconds: Seconds between reaper runs.
            stale_after_seconds: Heartbeat age after which a worker is
                considered dead.
            clock: Clock for the staleness cutoff.
        """
        settings = get_settings()
        self.interval = interval_seconds or settings.reaper_interval_seconds
        self.stale_after = stale_after_seconds or settings.worker_stale_after_seconds
        self._clock = clock or get_clock()
        self._stop_event = asyncio.Event()
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start the reaper loop."""
        logger.info(f"Reaper starting with interval {self.interval}s")

        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Error in reaper loop: {e}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except TimeoutError:
                pass

        logger.info("Reaper stopped")

    async def stop(self) -> None:
        """Stop the reaper."""
        logger.info("Reaper stopping")
        self._stop_event.set()

    async def run_once(self) -> int:
        """
        Run one recovery pass.

        Returns:
            Number of jobs returned to pending.
        """
        now = self._clock.now()
        cutoff = now - timedelta(seconds=self.stale_after)
        recovered = 0

        async with get_session_context() as session:
            workers = WorkerRepository(session)
            jobs = JobRepository(session)

            stale = await workers.list_stale(cutoff)
            if not stale:
                return 0

            worker_ids = [w.worker_id for w in stale]
            for job in await jobs.processing_jobs_of(worker_ids):
                owner = job.worker
                released = await jobs.conditional_update(
                    job.id,
                    JobState.PROCESSING,
                    {"state": JobState.PENDING, "worker": None, "next_run_at": None},
                    now=now,
                    owner=owner,
                )
                if released is not None:
                    recovered += 1
                    logger.warning(
                        "Recovered job from stale worker",
                        extra={"job_id": job.id, "worker_id": owner}
                    )

            await workers.deregister(worker_ids)

        if recovered:
            self._metrics.record_recovered(recovered)
        logger.info(
            f"Removed {len(worker_ids)} stale workers, recovered {recovered} jobs",
            extra={"workers": worker_ids}
        )
        return recovered


async def run_async() -> None:
    """Run the reaper asynchronously."""
    setup_logging()
    await init_db()

    reaper = Reaper()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(reaper.stop())
        )

    try:
        await reaper.start()
    finally:
        await close_db()


def run() -> None:
    """Run the reaper."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
