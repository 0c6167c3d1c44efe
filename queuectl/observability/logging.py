"""
Structured logging with structlog.

Modules log through the standard library (logging.getLogger(__name__) with
extra={...}); structlog renders those records together with its own. Job
and worker ids passed in extra end up as fields of the rendered line.
"""

import logging
import sys
from typing import Any

import structlog
from opentelemetry import trace

from queuectl.config import get_settings

# Chatty at INFO, not useful for queue operators
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Attach trace_id and span_id when a span is recording."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    if log_format == "logfmt":
        return structlog.processors.LogfmtRenderer(key_order=["timestamp", "level", "event"])
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure logging for the API, workers, reaper and CLI.

    Output goes to stderr so CLI commands can print results on stdout.

    Args:
        level: Log level name; LOG_LEVEL when omitted.
        fmt: "json", "logfmt" or "console"; LOG_FORMAT when omitted.
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(fmt or settings.log_format),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for code that logs key/value pairs directly."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """
    Bind fields to every log line from the current task.

    Workers bind their worker_id once so each line they log carries it.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop fields bound with bind_context()."""
    structlog.contextvars.clear_contextvars()
