"""
API request and response type definitions.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from queuectl.constants import MAX_RETRIES_LIMIT, MAX_WORKERS, MIN_WORKERS, JobState


class EnqueueRequest(BaseModel):
    """Request body for enqueueing a job."""

    command: str = Field(..., min_length=1, description="Shell command to run")
    max_retries: int | None = Field(
        default=None,
        ge=1,
        le=MAX_RETRIES_LIMIT,
        description="Retries after the first attempt; defaults to the configured value",
    )
    id: str | None = Field(
        default=None,
        min_length=1,
        max_length=64,
        description="Job id; generated when omitted",
    )

    @field_validator("command")
    @classmethod
    def command_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("command must not be blank")
        return value


class JobResponse(BaseModel):
    """Full job details response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    command: str
    state: JobState
    attempts: int
    max_retries: int
    created_at: datetime
    updated_at: datetime
    next_run_at: datetime | None
    worker: str | None
    last_exit_code: int | None
    last_error: str | None
    output: str | None


class JobListResponse(BaseModel):
    """Page of jobs in one state."""

    jobs: list[JobResponse]
    state: JobState
    page: int
    page_size: int
    has_next: bool


class DeadLetterResponse(BaseModel):
    """Jobs in the dead letter queue."""

    count: int
    jobs: list[JobResponse]


class WorkerInfo(BaseModel):
    """One live worker heartbeat."""

    model_config = ConfigDict(from_attributes=True)

    worker_id: str
    hostname: str
    pid: int
    started_at: datetime
    last_heartbeat_at: datetime
    current_job_id: str | None


class StatusResponse(BaseModel):
    """Job counts by state plus live workers."""

    counts: dict[JobState, int]
    total: int
    workers: list[WorkerInfo]
    timestamp: datetime


class StartWorkersRequest(BaseModel):
    """Request body for starting the in-process worker pool."""

    count: int = Field(default=1, ge=MIN_WORKERS, le=MAX_WORKERS)


class WorkersResponse(BaseModel):
    """State of the in-process worker pool."""

    running: bool
    worker_ids: list[str]


class QueueConfig(BaseModel):
    """Runtime queue configuration, validated on every write."""

    max_retries: int = Field(ge=1, le=MAX_RETRIES_LIMIT)
    backoff_base: float = Field(ge=1)
    poll_interval_seconds: float = Field(gt=0)


class ConfigUpdateRequest(BaseModel):
    """Partial update of the runtime configuration."""

    max_retries: int | None = None
    backoff_base: float | None = None
    poll_interval_seconds: float | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: str | None = None
