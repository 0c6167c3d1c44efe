"""
Worker pool control routes.

These control the pool inside the API process. Stopping also flags
workers running in other processes through the store.
"""

import logging

from fastapi import APIRouter

from queuectl.constants import API_V1_PREFIX
from queuectl.types.api import StartWorkersRequest, WorkersResponse
from queuectl.worker.pool import get_worker_pool, request_stop_all

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/workers", tags=["Workers"])


def _pool_response() -> WorkersResponse:
    pool = get_worker_pool()
    return WorkersResponse(running=pool.is_running, worker_ids=pool.worker_ids)


@router.get(
    "",
    response_model=WorkersResponse,
    summary="Worker pool state",
)
async def get_workers() -> WorkersResponse:
    return _pool_response()


@router.post(
    "/start",
    response_model=WorkersResponse,
    summary="Start workers",
    description="Start the in-process worker pool with the given number of workers.",
)
async def start_workers(request: StartWorkersRequest | None = None) -> WorkersResponse:
    """
    Start workers; one when no body is sent.

    Raises:
        InvalidStateError: If the pool is already running (400).
    """
    request = request or StartWorkersRequest()
    await get_worker_pool().start(request.count)
    return _pool_response()


@router.post(
    "/stop",
    response_model=WorkersResponse,
    summary="Stop workers",
    description="Stop all workers after their in-flight jobs finish.",
)
async def stop_workers() -> WorkersResponse:
    flagged = await request_stop_all()
    await get_worker_pool().stop()

    logger.info("Workers stop requested via API", extra={"flagged": flagged})
    return _pool_response()
