"""
API routes module.
"""

from queuectl.api.routes.config import router as config_router
from queuectl.api.routes.health import router as health_router
from queuectl.api.routes.jobs import router as jobs_router
from queuectl.api.routes.queue import router as queue_router
from queuectl.api.routes.workers import router as workers_router

__all__ = ["jobs_router", "queue_router", "workers_router", "config_router", "health_router"]
