"""
Worker engine: claim protocol, command execution, finalize transition,
and the pool that runs workers.
"""

from queuectl.worker.backoff import backoff_delay, next_run_at
from queuectl.worker.claim import claim_job
from queuectl.worker.engine import Worker
from queuectl.worker.finalize import finalize_job
from queuectl.worker.pool import WorkerPool, get_worker_pool, request_stop_all
from queuectl.worker.runner import CommandRunner, ShellCommandRunner

__all__ = [
    "backoff_delay",
    "next_run_at",
    "claim_job",
    "finalize_job",
    "Worker",
    "WorkerPool",
    "get_worker_pool",
    "request_stop_all",
    "CommandRunner",
    "ShellCommandRunner",
]
