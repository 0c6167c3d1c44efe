"""
Worker process entry point.

Starts a pool of workers in the foreground and drains it on SIGTERM/SIGINT
or when a stop is requested through the store.
"""

import asyncio
import logging
import signal

from queuectl.db import close_db, init_db
from queuectl.observability.logging import setup_logging
from queuectl.observability.metrics import setup_metrics
from queuectl.observability.tracing import setup_tracing
from queuectl.worker.pool import WorkerPool

logger = logging.getLogger(__name__)


async def run_async(count: int = 1) -> None:
    """Run a worker pool until it is stopped."""
    setup_logging()
    setup_metrics()
    setup_tracing()
    await init_db()

    pool = WorkerPool()

    try:
        await pool.start(count)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda: asyncio.create_task(pool.stop())
            )

        await pool.wait()
    finally:
        await close_db()


def run(count: int = 1) -> None:
    """Run the worker pool."""
    asyncio.run(run_async(count))


if __name__ == "__main__":
    run()
