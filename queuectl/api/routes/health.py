"""
Health, readiness and metrics routes.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from queuectl import __version__
from queuectl.clock import utc_now
from queuectl.db import get_async_session
from queuectl.observability.metrics import get_metrics
from queuectl.services import status_summary
from queuectl.types.api import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


async def _store_reachable(session: AsyncSession) -> bool:
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Store unreachable: {e}")
        return False
    return True


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Report the API version and whether the job store answers.",
)
async def health_check(
    session: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    reachable = await _store_reachable(session)

    return HealthResponse(
        status="healthy" if reachable else "degraded",
        version=__version__,
        database="healthy" if reachable else "unhealthy",
        timestamp=utc_now(),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="503 until the job store answers.",
)
async def readiness_check(
    session: AsyncSession = Depends(get_async_session),
) -> JSONResponse:
    ready = await _store_reachable(session)
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"ready": ready},
    )


@router.get("/live", summary="Liveness check")
async def liveness_check() -> dict:
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Queue counters and gauges in the Prometheus text format.",
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics.

    The per-state job gauge is refreshed from the store on each scrape, so
    it also reflects jobs moved by other processes.
    """
    collector = get_metrics()
    counts = await status_summary()
    collector.update_queue_depth({state.value: n for state, n in counts.items()})

    return Response(
        content=collector.get_metrics(),
        media_type=collector.get_content_type(),
    )
