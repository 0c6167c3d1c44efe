"""
Runtime configuration routes.
"""

from fastapi import APIRouter

from queuectl.constants import API_V1_PREFIX
from queuectl.services import get_config, update_config
from queuectl.types.api import ConfigUpdateRequest, QueueConfig

router = APIRouter(prefix=f"{API_V1_PREFIX}/config", tags=["Config"])


@router.get("", response_model=QueueConfig, summary="Show configuration")
async def read_config() -> QueueConfig:
    return await get_config()


@router.put(
    "",
    response_model=QueueConfig,
    summary="Update configuration",
    description="Set one or more of max_retries, backoff_base, poll_interval_seconds.",
)
async def write_config(request: ConfigUpdateRequest) -> QueueConfig:
    return await update_config(request.model_dump(exclude_none=True))
