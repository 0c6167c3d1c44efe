"""
Queue operations exposed to the API and CLI.
"""

from queuectl.services.config import get_config, get_value, set_value, update_config
from queuectl.services.dlq import list_dead, retry_from_dlq
from queuectl.services.jobs import enqueue, get_job, list_by_state
from queuectl.services.status import live_workers, status_summary

__all__ = [
    "enqueue",
    "get_job",
    "list_by_state",
    "list_dead",
    "retry_from_dlq",
    "status_summary",
    "live_workers",
    "get_config",
    "get_value",
    "set_value",
    "update_config",
]
