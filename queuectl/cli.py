"""
Command line interface for queuectl.

Every command opens the store configured by DATABASE_URL, runs one queue
operation, and closes it again. Queue errors are printed in red and exit
with status 1.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click
import pydantic

from queuectl import __version__
from queuectl.constants import CONFIG_KEYS, MAX_WORKERS, MIN_WORKERS, JobState
from queuectl.db import close_db, init_db
from queuectl.exceptions import QueueError
from queuectl.observability.logging import get_logger, setup_logging
from queuectl.reaper import run as run_reaper
from queuectl.services import (
    enqueue,
    get_config,
    list_by_state,
    list_dead,
    live_workers,
    retry_from_dlq,
    set_value,
    status_summary,
)
from queuectl.types.api import EnqueueRequest
from queuectl.worker.main import run_async as run_workers
from queuectl.worker.pool import request_stop_all

logger = get_logger(__name__)

T = TypeVar("T")


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    raise SystemExit(1)


def _run(operation: Callable[[], Awaitable[T]]) -> T:
    """Run one queue operation against a freshly opened store."""

    async def runner() -> T:
        await init_db()
        try:
            return await operation()
        finally:
            await close_db()

    try:
        return asyncio.run(runner())
    except QueueError as e:
        logger.debug("command failed", error=str(e), error_type=type(e).__name__)
        _fail(str(e))


def _format_time(value: Any) -> str:
    return value.isoformat(timespec="seconds") if value is not None else "-"


@click.group(help="queuectl: background job queue CLI")
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Override LOG_LEVEL for this command")
def cli(log_level: str | None) -> None:
    setup_logging(level=log_level)


# ---------- Jobs ----------
@cli.command("enqueue", help='Add a job, e.g. queuectl enqueue \'{"command": "echo hi"}\'')
@click.argument("job_json")
def enqueue_cmd(job_json: str) -> None:
    try:
        request = EnqueueRequest.model_validate_json(job_json)
    except pydantic.ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'job'}: {err['msg']}"
            for err in e.errors()
        )
        _fail(f"Invalid job: {errors}")

    job = _run(lambda: enqueue(
        command=request.command,
        max_retries=request.max_retries,
        job_id=request.id,
    ))
    click.secho(f"Enqueued {job.id} -> `{job.command}`", fg="green")


@cli.command("list", help="List jobs in one state, newest first")
@click.option(
    "--state",
    type=click.Choice([s.value for s in JobState]),
    default=JobState.PENDING.value,
    show_default=True,
)
@click.option("--limit", type=int, default=20, show_default=True)
def list_cmd(state: str, limit: int) -> None:
    jobs = _run(lambda: list_by_state(JobState(state), limit=limit))

    if not jobs:
        click.echo("No jobs.")
        return

    for job in jobs:
        click.echo(
            f"{job.id} | {job.state.value} | attempts={job.attempts}/{job.max_retries} "
            f"| next={_format_time(job.next_run_at)} | cmd={job.command} "
            f"| last_error={job.last_error or '-'}"
        )


@cli.command("status", help="Show job counts by state and live workers")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
def status_cmd(as_json: bool) -> None:
    async def collect() -> tuple[dict[JobState, int], list]:
        return await status_summary(), await live_workers()

    counts, workers = _run(collect)

    if as_json:
        click.echo(json.dumps({
            "counts": {state.value: n for state, n in counts.items()},
            "workers": [w.worker_id for w in workers],
        }, indent=2))
        return

    for state, n in counts.items():
        click.echo(f"{state.value:<11} {n}")
    click.echo(f"{'workers':<11} {len(workers)}")
    for w in workers:
        click.echo(f"  {w.worker_id} job={w.current_job_id or '-'}")


# ---------- Workers ----------
@cli.group("worker", help="Manage workers")
def worker_group() -> None:
    pass


@worker_group.command("start", help="Run workers in the foreground until stopped")
@click.option(
    "--count",
    type=click.IntRange(MIN_WORKERS, MAX_WORKERS),
    default=1,
    show_default=True,
    help="Number of workers",
)
def worker_start(count: int) -> None:
    click.secho(f"Starting {count} worker(s). Press Ctrl+C to stop.", fg="cyan")
    try:
        asyncio.run(run_workers(count))
    except QueueError as e:
        _fail(str(e))
    click.secho("Workers stopped.", fg="yellow")


@worker_group.command("stop", help="Ask every running worker to stop after its current job")
def worker_stop() -> None:
    count = _run(request_stop_all)
    if count:
        click.secho(f"Stop requested for {count} worker(s).", fg="green")
    else:
        click.echo("No running workers.")


# ---------- DLQ ----------
@cli.group("dlq", help="Dead letter queue")
def dlq_group() -> None:
    pass


@dlq_group.command("list")
@click.option("--limit", type=int, default=100, show_default=True)
def dlq_list_cmd(limit: int) -> None:
    jobs = _run(lambda: list_dead(limit=limit))

    if not jobs:
        click.echo("DLQ is empty.")
        return

    for job in jobs:
        click.echo(
            f"{job.id} | attempts={job.attempts} | last_error={job.last_error or '-'} "
            f"| cmd={job.command}"
        )


@dlq_group.command("retry")
@click.argument("job_id")
def dlq_retry_cmd(job_id: str) -> None:
    job = _run(lambda: retry_from_dlq(job_id))
    click.secho(f"Re-queued DLQ job {job.id}.", fg="green")


# ---------- Config ----------
@cli.group("config", help="Runtime configuration shared by all workers")
def config_group() -> None:
    pass


@config_group.command("get")
def config_get() -> None:
    config = _run(get_config)
    click.echo(json.dumps(config.model_dump(), indent=2))


@config_group.command("set")
@click.argument("key", type=click.Choice(list(CONFIG_KEYS)))
@click.argument("value")
def config_set_cmd(key: str, value: str) -> None:
    config = _run(lambda: set_value(key, value))
    click.secho(f"Config updated: {key}={getattr(config, key)}", fg="green")


# ---------- Services ----------
@cli.command("reaper", help="Recover jobs from dead workers on an interval")
def reaper_cmd() -> None:
    run_reaper()


@cli.command("serve", help="Run the HTTP API")
@click.option("--host", default=None, help="Bind host (default API_HOST)")
@click.option("--port", type=int, default=None, help="Bind port (default API_PORT)")
def serve_cmd(host: str | None, port: int | None) -> None:
    from queuectl.api import run

    run(host=host, port=port)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
