"""
OpenTelemetry tracing.

Each job attempt produces up to three spans: claim_job, execute_job and
finalize_job. Spans are always created; they leave the process only when
OTEL_EXPORTER_OTLP_ENDPOINT is set.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, Tracer

from queuectl import __version__
from queuectl.config import get_settings

logger = logging.getLogger(__name__)

_tracer: Tracer | None = None


def setup_tracing(enable_console_export: bool = False) -> Tracer:
    """
    Install the tracer provider for this process.

    Safe to call more than once; only the first call installs a provider.

    Args:
        enable_console_export: Also print finished spans to stdout.

    Returns:
        Tracer: The queue tracer.
    """
    global _tracer
    if _tracer is not None:
        return _tracer

    settings = get_settings()
    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.otel_service_name,
                "service.version": __version__,
            }
        )
    )

    endpoint = settings.otel_exporter_otlp_endpoint
    if endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
        )
        logger.info("Exporting spans over OTLP", extra={"endpoint": endpoint})

    if enable_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(settings.otel_service_name)
    return _tracer


def instrument_fastapi(app: Any) -> None:
    """Trace every request handled by app."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine: Any) -> None:
    """
    Trace statements run by engine.

    Args:
        engine: A sync Engine; pass AsyncEngine.sync_engine for async engines.
    """
    instrumentor = SQLAlchemyInstrumentor()
    if instrumentor.is_instrumented_by_opentelemetry:
        return
    instrumentor.instrument(engine=engine)


def get_tracer() -> Tracer:
    """
    Get the queue tracer.

    Before setup_tracing() runs this is the global provider's tracer, a
    no-op one, so spans can be opened unconditionally.
    """
    if _tracer is None:
        return trace.get_tracer("queuectl")
    return _tracer


@contextmanager
def job_span(name: str, **attributes: Any) -> Iterator[Span]:
    """
    Open a span around one step of a job's life.

    Attributes whose value is None are left off the span.

    Args:
        name: Span name, one of the SPAN_* constants.
        **attributes: Span attributes such as job_id or worker_id.
    """
    with get_tracer().start_as_current_span(name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)
        yield span
