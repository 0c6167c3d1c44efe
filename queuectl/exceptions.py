"""
Exception types raised by the queue core.

Transient and permanent job failures are not exceptions: they surface as
state changes on the job row. These types cover caller errors and the
conditions the caller must handle.
"""


class QueueError(Exception):
    """Base class for all queue errors."""


class NotFoundError(QueueError):
    """No job exists with the given id."""

    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class AlreadyExistsError(QueueError):
    """A job with the given id already exists."""

    def __init__(self, job_id: str):
        super().__init__(f"Job already exists: {job_id}")
        self.job_id = job_id


class InvalidStateError(QueueError):
    """The job or component is not in a state that allows the operation."""


class RunnerError(QueueError):
    """The command could not be started."""


class ValidationError(QueueError):
    """Malformed input at the edge (config values, enqueue requests)."""
