"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from queuectl.constants import (
    METRIC_ACTIVE_WORKERS,
    METRIC_CLAIMS,
    METRIC_DLQ_RETRIES,
    METRIC_FINALIZE_CONFLICTS,
    METRIC_JOB_DURATION,
    METRIC_JOBS_ENQUEUED,
    METRIC_JOBS_FINALIZED,
    METRIC_QUEUE_DEPTH,
    METRIC_RECOVERED_JOBS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the job queue.

    Collects metrics for:
    - Job counts by state
    - Enqueues, claims, and finalizations
    - Command execution duration
    - DLQ retries and reaper recoveries
    - Active workers
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of jobs by state",
            ["state"],
            registry=self._registry,
        )

        self.jobs_enqueued = Counter(
            METRIC_JOBS_ENQUEUED,
            "Total number of jobs enqueued",
            registry=self._registry,
        )

        self.jobs_finalized = Counter(
            METRIC_JOBS_FINALIZED,
            "Total number of finalized executions by resulting state",
            ["state"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Command execution duration in seconds",
            ["state"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

        self.claims = Counter(
            METRIC_CLAIMS,
            "Claim rounds by outcome",
            ["worker_id", "outcome"],
            registry=self._registry,
        )

        self.finalize_conflicts = Counter(
            METRIC_FINALIZE_CONFLICTS,
            "Finalize writes rejected because the job left processing",
            registry=self._registry,
        )

        self.dlq_retries = Counter(
            METRIC_DLQ_RETRIES,
            "Total number of jobs revived from the DLQ",
            registry=self._registry,
        )

        self.recovered_jobs = Counter(
            METRIC_RECOVERED_JOBS,
            "Jobs returned to pending after their worker went stale",
            registry=self._registry,
        )

        self.active_workers = Gauge(
            METRIC_ACTIVE_WORKERS,
            "Workers running in this process",
            registry=self._registry,
        )

    def record_job_enqueued(self) -> None:
        """Record an enqueue."""
        self.jobs_enqueued.inc()

    def record_claim(self, worker_id: str, outcome: str) -> None:
        """Record the outcome of a claim round."""
        self.claims.labels(worker_id=worker_id, outcome=outcome).inc()

    def record_job_finalized(self, state: str, duration_seconds: float) -> None:
        """Record a finalized execution."""
        self.jobs_finalized.labels(state=state).inc()
        self.job_duration.labels(state=state).observe(duration_seconds)

    def record_finalize_conflict(self) -> None:
        self.finalize_conflicts.inc()

    def record_dlq_retry(self) -> None:
        self.dlq_retries.inc()

    def record_recovered(self, count: int = 1) -> None:
        self.recovered_jobs.inc(count)

    def set_active_workers(self, count: int) -> None:
        self.active_workers.set(count)

    def update_queue_depth(self, counts: dict[str, int]) -> None:
        """Update the per-state job gauges."""
        for state, count in counts.items():
            self.queue_depth.labels(state=state).set(count)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
