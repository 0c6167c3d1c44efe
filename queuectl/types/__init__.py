"""
Type definitions for the job queue.
Contains input/output type definitions, grouped by module.
"""

from queuectl.types.api import (
    ConfigUpdateRequest,
    DeadLetterResponse,
    EnqueueRequest,
    ErrorResponse,
    HealthResponse,
    JobListResponse,
    JobResponse,
    QueueConfig,
    StartWorkersRequest,
    StatusResponse,
    WorkerInfo,
    WorkersResponse,
)
from queuectl.types.job import CommandResult, ExecutionOutcome

__all__ = [
    # API types
    "EnqueueRequest",
    "JobResponse",
    "JobListResponse",
    "DeadLetterResponse",
    "WorkerInfo",
    "StatusResponse",
    "StartWorkersRequest",
    "WorkersResponse",
    "QueueConfig",
    "ConfigUpdateRequest",
    "HealthResponse",
    "ErrorResponse",
    # Job types
    "CommandResult",
    "ExecutionOutcome",
]
