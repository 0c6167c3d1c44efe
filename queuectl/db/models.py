"""
SQLAlchemy database models.
Defines the jobs table, the runtime config table, and worker heartbeats.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from queuectl.clock import utc_now
from queuectl.constants import JobState


def _new_job_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Job(Base):
    """
    Job model representing a shell command waiting for, undergoing, or done
    with execution.

    This is the authoritative source of truth for job state. Rows are
    overwritten in place on every transition; there is no per-attempt
    history.

    Key constraints:
    - worker is set iff state is processing
    - next_run_at is only set on a pending job waiting out its backoff
    - attempts grows by one per finalized execution and is reset only by
      a DLQ retry
    """

    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=_new_job_id,
    )

    command: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    state: Mapped[JobState] = mapped_column(
        Enum(
            JobState,
            name="job_state",
            native_enum=False,
            length=16,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        default=JobState.PENDING,
    )

    # Retry tracking
    attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    max_retries: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=3,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
    )
    next_run_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
    )

    # Claim ownership
    worker: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )

    # Result of the most recent execution
    last_exit_code: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    last_error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    output: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    __table_args__ = (
        # Eligibility scan: pending rows whose backoff has elapsed
        Index("ix_jobs_state_next_run", "state", "next_run_at"),
        Index("ix_jobs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"Job(id={self.id}, state={self.state}, "
            f"attempts={self.attempts}/{self.max_retries})"
        )


class ConfigEntry(Base):
    """Runtime configuration value, stored as text."""

    __tablename__ = "config"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
    )


class WorkerHeartbeat(Base):
    """
    Liveness record for one running worker.

    A pool refreshes its rows periodically; rows that stop moving belong to
    workers that died without deregistering.
    """

    __tablename__ = "worker_heartbeats"

    worker_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    hostname: Mapped[str] = mapped_column(String(255), nullable=False)
    pid: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    last_heartbeat_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        index=True,
    )
    current_job_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    stop_requested: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    def __repr__(self) -> str:
        return f"WorkerHeartbeat(worker_id={self.worker_id}, job={self.current_job_id})"
