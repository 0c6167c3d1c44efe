"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobState(StrEnum):
    """
    Job lifecycle states.

    State transitions:
    - PENDING -> PROCESSING (claimed by a worker)
    - PROCESSING -> COMPLETED (exit code 0)
    - PROCESSING -> PENDING (failed, retries remain, next_run_at set)
    - PROCESSING -> DEAD (failed, retries exhausted)
    - DEAD -> PENDING (revived from the DLQ, attempts reset)
    - PROCESSING -> PENDING (worker heartbeat went stale, reaper recovery)

    FAILED is kept for compatibility with existing stores; no transition
    writes it.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    DEAD = "dead"


class WorkerState(StrEnum):
    """Per-worker loop states."""

    IDLE = "idle"
    CLAIMING = "claiming"
    EXECUTING = "executing"
    FINALIZING = "finalizing"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ClaimOutcome(StrEnum):
    """Result label of a single claim round."""

    CLAIMED = "claimed"
    EMPTY = "empty"
    CONFLICT = "conflict"


# Bounds
MIN_WORKERS = 1
MAX_WORKERS = 10
MAX_RETRIES_LIMIT = 10

# Exit code recorded when the command could not be started at all
RUNNER_FAILURE_EXIT_CODE = -1

# Runtime configuration keys stored in the config table
CONFIG_MAX_RETRIES = "max_retries"
CONFIG_BACKOFF_BASE = "backoff_base"
CONFIG_POLL_INTERVAL = "poll_interval_seconds"
CONFIG_KEYS = (CONFIG_MAX_RETRIES, CONFIG_BACKOFF_BASE, CONFIG_POLL_INTERVAL)

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "queuectl_jobs"
METRIC_JOBS_ENQUEUED = "queuectl_jobs_enqueued_total"
METRIC_JOBS_FINALIZED = "queuectl_jobs_finalized_total"
METRIC_JOB_DURATION = "queuectl_job_duration_seconds"
METRIC_CLAIMS = "queuectl_claims_total"
METRIC_FINALIZE_CONFLICTS = "queuectl_finalize_conflicts_total"
METRIC_DLQ_RETRIES = "queuectl_dlq_retries_total"
METRIC_ACTIVE_WORKERS = "queuectl_active_workers"
METRIC_RECOVERED_JOBS = "queuectl_recovered_jobs_total"

# Trace span names
SPAN_CLAIM_JOB = "claim_job"
SPAN_EXECUTE_JOB = "execute_job"
SPAN_FINALIZE_JOB = "finalize_job"
