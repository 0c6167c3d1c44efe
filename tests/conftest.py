"""
Pytest configuration and shared fixtures.
"""

from collections.abc import AsyncGenerator, Generator
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

import queuectl.worker.pool as pool_module
from queuectl.api.main import create_app
from queuectl.config import get_settings
from queuectl.constants import JobState
from queuectl.db import Job, JobRepository, close_db, get_session_context, init_db
from queuectl.types.job import CommandResult


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2025, 1, 1, 12, 0, 0)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class FakeRunner:
    """
    Runner that returns scripted results instead of starting processes.

    Each script entry is a CommandResult or an exception to raise. When the
    script runs out the last entry repeats.
    """

    def __init__(self, *script: CommandResult | Exception):
        self.script = list(script) or [CommandResult(exit_code=0, output="")]
        self.commands: list[str] = []

    async def execute(self, command: str) -> CommandResult:
        self.commands.append(command)
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        return step


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """A fresh SQLite file database per test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'queue.db'}"


@pytest.fixture(autouse=True)
def isolated_settings(
    database_url: str,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None]:
    """Point settings at the test database with short intervals."""
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "0.05")
    monkeypatch.setenv("HEARTBEAT_INTERVAL_SECONDS", "0.05")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    get_settings.cache_clear()
    monkeypatch.setattr(pool_module, "_pool", None)

    yield

    get_settings.cache_clear()


@pytest_asyncio.fixture
async def db(database_url: str) -> AsyncGenerator[None]:
    """Initialize the global engine and schema for one test."""
    await init_db(database_url)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(db: None) -> AsyncGenerator[AsyncSession]:
    """A committing session on the test database."""
    async with get_session_context() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def make_job(db: None, clock: FrozenClock):
    """Insert a job directly, bypassing the service layer."""

    async def factory(
        command: str = "echo hi",
        job_id: str | None = None,
        state: JobState = JobState.PENDING,
        attempts: int = 0,
        max_retries: int = 3,
        created_at: datetime | None = None,
        next_run_at: datetime | None = None,
        worker: str | None = None,
    ) -> Job:
        created = created_at or clock.now()
        job = Job(
            command=command,
            state=state,
            attempts=attempts,
            max_retries=max_retries,
            created_at=created,
            updated_at=created,
            next_run_at=next_run_at,
            worker=worker,
        )
        if job_id is not None:
            job.id = job_id

        async with get_session_context() as session:
            await JobRepository(session).insert(job)
        return job

    return factory


async def load_job(job_id: str) -> Job:
    """Re-read a job in a fresh session."""
    async with get_session_context() as session:
        return await JobRepository(session).get(job_id)


@pytest.fixture
def fetch_job():
    return load_job


@pytest_asyncio.fixture
async def app(db: None) -> AsyncGenerator[FastAPI]:
    """Create a FastAPI app on the initialized test database."""
    yield create_app()
    await pool_module.get_worker_pool().stop()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
