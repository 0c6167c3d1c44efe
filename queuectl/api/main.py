"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from queuectl import __version__
from queuectl.api.routes import (
    config_router,
    health_router,
    jobs_router,
    queue_router,
    workers_router,
)
from queuectl.config import get_settings
from queuectl.db import close_db, get_engine, init_db
from queuectl.exceptions import (
    AlreadyExistsError,
    InvalidStateError,
    NotFoundError,
    QueueError,
    ValidationError,
)
from queuectl.observability.logging import setup_logging
from queuectl.observability.metrics import setup_metrics
from queuectl.observability.tracing import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_tracing,
)
from queuectl.types.api import ErrorResponse
from queuectl.worker.pool import get_worker_pool

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[QueueError], int] = {
    NotFoundError: 404,
    InvalidStateError: 400,
    AlreadyExistsError: 409,
    ValidationError: 422,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    setup_logging()
    setup_metrics()
    setup_tracing()
    await init_db()
    instrument_sqlalchemy(get_engine().sync_engine)

    logger.info("Application started")

    yield

    # Shutdown: drain in-process workers before the engine goes away
    await get_worker_pool().stop()
    await close_db()
    logger.info("Application shutdown")


async def queue_error_handler(request: Request, exc: QueueError) -> JSONResponse:
    """Render queue errors as ErrorResponse bodies."""
    status_code = 500
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break

    if status_code >= 500:
        logger.error(
            "Unhandled queue error",
            extra={"path": request.url.path, "error": str(exc)},
        )

    body = ErrorResponse(error=type(exc).__name__, detail=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured application instance.
    """
    app = FastAPI(
        title="queuectl API",
        description="Durable shell-command job queue with retries and a dead letter queue",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(QueueError, queue_error_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(jobs_router)
    app.include_router(queue_router)
    app.include_router(workers_router)
    app.include_router(config_router)

    # Instrument with OpenTelemetry
    instrument_fastapi(app)

    return app


def run(host: str | None = None, port: int | None = None) -> None:
    """Run the API server."""
    settings = get_settings()
    app = create_app()

    uvicorn.run(
        app,
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_level=settings.log_level.lower(),
    )


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    run()
