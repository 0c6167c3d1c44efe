"""
Database connection management.
Handles async SQLAlchemy engine and session creation.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from queuectl.config import get_settings
from queuectl.db.models import Base

logger = logging.getLogger(__name__)

# Global engine instance
_engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def create_engine(database_url: str) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite connections run in WAL mode with a busy timeout so that
    concurrent workers wait on the write lock instead of failing.

    Args:
        database_url: SQLAlchemy async database URL.

    Returns:
        AsyncEngine: The SQLAlchemy async engine instance.
    """
    settings = get_settings()

    if not _is_sqlite(database_url):
        return create_async_engine(
            database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            echo=settings.log_level == "DEBUG",
            pool_pre_ping=True,
        )

    engine = create_async_engine(
        database_url,
        echo=settings.log_level == "DEBUG",
        connect_args={
            "check_same_thread": False,
            "timeout": settings.database_busy_timeout_ms / 1000,
        },
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn: Any, _connection_record: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute(f"PRAGMA busy_timeout={settings.database_busy_timeout_ms}")
        cursor.close()

    return engine


def get_engine() -> AsyncEngine:
    """
    Get or create the async database engine.

    Returns:
        AsyncEngine: The SQLAlchemy async engine instance.
    """
    global _engine
    if _engine is None:
        _engine = create_engine(get_settings().database_url)
    return _engine


async def create_schema(engine: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db(database_url: str | None = None, create_tables: bool = True) -> None:
    """
    Connect to the job store and build the session factory.

    Every entry point (API, worker, reaper, CLI command) calls this before
    its first queue operation.

    Args:
        database_url: Override for the configured database URL.
        create_tables: Create missing tables after connecting.
    """
    global _engine, AsyncSessionLocal
    if database_url is not None:
        if _engine is not None:
            await _engine.dispose()
        _engine = create_engine(database_url)

    engine = get_engine()
    AsyncSessionLocal = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    if create_tables:
        await create_schema(engine)

    logger.info("Database connection initialized", extra={"url": engine.url.render_as_string()})


async def close_db() -> None:
    """Dispose of the engine; init_db() must run again before further use."""
    global _engine, AsyncSessionLocal
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        AsyncSessionLocal = None
        logger.info("Database connection closed")


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession]:
    """
    Open a session that is one transaction.

    Commits when the block exits normally and rolls back when it raises.
    Queue operations open one of these per store round trip, so no
    transaction is held across command execution.

    Raises:
        RuntimeError: If init_db() has not run.
    """
    if AsyncSessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency wrapping get_session_context()."""
    async with get_session_context() as session:
        yield session
