"""
Repositories for database operations.
Implements the data access patterns for jobs, runtime config, and worker
heartbeats.
"""

import logging
from collections.abc import AsyncIterator, Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from queuectl.clock import utc_now
from queuectl.constants import JobState
from queuectl.db.models import ConfigEntry, Job, WorkerHeartbeat
from queuectl.exceptions import AlreadyExistsError, NotFoundError

logger = logging.getLogger(__name__)


class JobRepository:
    """
    Repository for job database operations.

    Every state transition goes through conditional_update, a single-row
    compare-and-set on the job's state. No other write touches an existing
    job, so no multi-row transactions or explicit locks are needed.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: The async database session.
        """
        self._session = session

    async def insert(self, job: Job) -> Job:
        """
        Insert a new job.

        Args:
            job: The job to persist.

        Returns:
            The persisted job.

        Raises:
            AlreadyExistsError: If a job with the same id exists.
        """
        if job.id is not None and await self.find(job.id) is not None:
            raise AlreadyExistsError(job.id)

        self._session.add(job)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise AlreadyExistsError(job.id) from e

        logger.info(
            "Inserted job",
            extra={"job_id": job.id, "state": job.state.value}
        )
        return job

    async def find(self, job_id: str) -> Job | None:
        """
        Get a job by ID, or None if it does not exist.
        """
        stmt = select(Job).where(Job.id == job_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, job_id: str) -> Job:
        """
        Get a job by ID.

        Args:
            job_id: The job id.

        Returns:
            The Job.

        Raises:
            NotFoundError: If no such job exists.
        """
        job = await self.find(job_id)
        if job is None:
            raise NotFoundError(job_id)
        return job

    async def query(
        self,
        state: JobState,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> AsyncIterator[Job]:
        """
        Stream jobs in the given state ordered by creation time.

        The result is consumed lazily from the database cursor and can be
        iterated only once, while the session is open.

        Args:
            state: State to filter on.
            descending: Newest first when True (listings), oldest first
                otherwise (eligibility scans).
            limit: Maximum number of jobs to yield.
            offset: Number of jobs to skip.

        Yields:
            Matching jobs.
        """
        if descending:
            ordering = (Job.created_at.desc(), Job.id.desc())
        else:
            ordering = (Job.created_at.asc(), Job.id.asc())

        stmt = select(Job).where(Job.state == state).order_by(*ordering).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.stream_scalars(stmt)
        async for job in result:
            yield job

    async def find_eligible(self, now: datetime) -> Job | None:
        """
        Get the earliest-created pending job whose backoff has elapsed.

        Args:
            now: Current time from the clock.

        Returns:
            The eligible job, or None.
        """
        stmt = (
            select(Job)
            .where(
                and_(
                    Job.state == JobState.PENDING,
                    or_(Job.next_run_at.is_(None), Job.next_run_at <= now),
                )
            )
            .order_by(Job.created_at.asc(), Job.id.asc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def conditional_update(
        self,
        job_id: str,
        expected_state: JobState,
        fields: dict[str, Any],
        now: datetime | None = None,
        owner: str | None = None,
    ) -> Job | None:
        """
        Atomically apply fields to a job if its state still matches.

        The state check and the write happen in one UPDATE statement, so
        of several concurrent callers expecting the same state at most one
        succeeds.

        Args:
            job_id: The job id.
            expected_state: State the row must be in for the write to apply.
            fields: Column values to set. updated_at is always set.
            now: Timestamp for updated_at.
            owner: When given, the row's worker must also match.

        Returns:
            The updated Job if the write applied, None otherwise.
        """
        filters = [Job.id == job_id, Job.state == expected_state]
        if owner is not None:
            filters.append(Job.worker == owner)

        values = {**fields, "updated_at": now or utc_now()}

        stmt = (
            update(Job)
            .where(and_(*filters))
            .values(**values)
            .returning(Job)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await self._session.execute(stmt)
        job = result.scalar_one_or_none()

        if job is None:
            logger.debug(
                "Conditional update rejected",
                extra={"job_id": job_id, "expected_state": expected_state.value}
            )

        return job

    async def processing_jobs_of(self, worker_ids: Iterable[str]) -> list[Job]:
        """
        Get the processing jobs held by any of the given workers.
        """
        stmt = select(Job).where(
            and_(
                Job.state == JobState.PROCESSING,
                Job.worker.in_(list(worker_ids)),
            )
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_state(self) -> dict[JobState, int]:
        """
        Get job counts grouped by state.

        Returns:
            Dictionary of state -> count, for states with at least one job.
        """
        stmt = select(Job.state, func.count()).group_by(Job.state)
        result = await self._session.execute(stmt)
        return {JobState(state): count for state, count in result.all()}


class ConfigRepository:
    """Key/value access to the runtime config table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, key: str) -> str | None:
        stmt = select(ConfigEntry.value).where(ConfigEntry.key == key)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(self) -> dict[str, str]:
        result = await self._session.execute(select(ConfigEntry.key, ConfigEntry.value))
        return {key: value for key, value in result.all()}

    async def set(self, key: str, value: str, now: datetime | None = None) -> None:
        await self._session.merge(
            ConfigEntry(key=key, value=value, updated_at=now or utc_now())
        )
        await self._session.flush()


class WorkerRepository:
    """
    Repository for worker heartbeat rows.

    A row exists for every worker a pool has started and not yet stopped.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def register(
        self,
        worker_id: str,
        hostname: str,
        pid: int,
        now: datetime,
    ) -> WorkerHeartbeat:
        """Insert or replace the heartbeat row of a starting worker."""
        heartbeat = await self._session.merge(
            WorkerHeartbeat(
                worker_id=worker_id,
                hostname=hostname,
                pid=pid,
                started_at=now,
                last_heartbeat_at=now,
                current_job_id=None,
                stop_requested=False,
            )
        )
        await self._session.flush()
        return heartbeat

    async def beat(
        self,
        worker_id: str,
        current_job_id: str | None,
        now: datetime,
    ) -> bool | None:
        """
        Refresh a worker's heartbeat.

        Returns:
            The row's stop_requested flag, or None if the row is gone.
        """
        stmt = (
            update(WorkerHeartbeat)
            .where(WorkerHeartbeat.worker_id == worker_id)
            .values(last_heartbeat_at=now, current_job_id=current_job_id)
            .returning(WorkerHeartbeat.stop_requested)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def deregister(self, worker_ids: Iterable[str]) -> int:
        """Delete heartbeat rows. Returns the number of rows removed."""
        stmt = delete(WorkerHeartbeat).where(
            WorkerHeartbeat.worker_id.in_(list(worker_ids))
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def list_live(self, cutoff: datetime) -> list[WorkerHeartbeat]:
        """Heartbeats refreshed at or after cutoff."""
        stmt = (
            select(WorkerHeartbeat)
            .where(WorkerHeartbeat.last_heartbeat_at >= cutoff)
            .order_by(WorkerHeartbeat.worker_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_stale(self, cutoff: datetime) -> list[WorkerHeartbeat]:
        """Heartbeats not refreshed since cutoff."""
        stmt = select(WorkerHeartbeat).where(WorkerHeartbeat.last_heartbeat_at < cutoff)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def request_stop_all(self) -> int:
        """
        Flag every registered worker to stop.

        Returns:
            Number of workers flagged.
        """
        stmt = update(WorkerHeartbeat).values(stop_requested=True)
        result = await self._session.execute(stmt)
        return result.rowcount
