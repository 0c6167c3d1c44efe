"""
Database module.
Contains database connection, models, and repository implementations.
"""

from queuectl.db.connection import (
    close_db,
    create_schema,
    get_async_session,
    get_engine,
    get_session_context,
    init_db,
)
from queuectl.db.models import Base, ConfigEntry, Job, WorkerHeartbeat
from queuectl.db.repository import ConfigRepository, JobRepository, WorkerRepository

__all__ = [
    "get_async_session",
    "get_session_context",
    "get_engine",
    "create_schema",
    "init_db",
    "close_db",
    "Base",
    "Job",
    "ConfigEntry",
    "WorkerHeartbeat",
    "JobRepository",
    "ConfigRepository",
    "WorkerRepository",
]
