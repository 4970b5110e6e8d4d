"""
Distributed Tracing with OpenTelemetry.

Spans cover HTTP requests, SQL statements and the card generation step.
With tracing disabled the global no-op tracer is used, so
`trace_operation` is always safe to call.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, Status, StatusCode
from sqlalchemy.ext.asyncio import AsyncEngine

from ticker.config import settings

TRACER_NAME = "ticker.operations"

# Health checks and scrapes would drown out real traffic
EXCLUDED_URLS = "health,metrics"

_provider_installed = False


def setup_tracing() -> None:
    """Install the OTLP tracer provider once per process."""
    global _provider_installed
    if not settings.tracing_enabled or _provider_installed:
        return

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.service_name,
                "service.version": settings.api_version,
            }
        )
    )
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=settings.otlp_insecure)
        )
    )
    trace.set_tracer_provider(provider)
    _provider_installed = True


def instrument_fastapi(app: Any) -> None:
    if settings.tracing_enabled:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=EXCLUDED_URLS)


def instrument_sqlalchemy(engine: AsyncEngine) -> None:
    if settings.tracing_enabled:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


def span_attribute(value: Any) -> str | int | float | bool:
    """Coerce a value to a type OpenTelemetry accepts as an attribute."""
    if isinstance(value, (str, int, float, bool)):
        return value
    if hasattr(value, "value"):
        return span_attribute(value.value)
    return str(value)


@contextmanager
def trace_operation(operation_name: str, **attributes: Any) -> Iterator[Span]:
    """
    Run a block inside a named span.

    Usage:
        with trace_operation("card_generation", category="stock") as span:
            ...
            span.set_attribute("valid", 8)

    An exception escaping the block marks the span as failed and is
    re-raised unchanged.
    """
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(
        operation_name, record_exception=False, set_status_on_exception=False
    ) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, span_attribute(value))
        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, type(exc).__name__))
            span.record_exception(exc)
            raise
