"""OpenTelemetry wiring for the dispatch service.

Tracing stays off unless ``otel_enabled`` is set. When it is on, each stage
run gets its own span (see ``TracingInterceptor``) and the inbound request
and the outbound downstream call are traced by the FastAPI and httpx
instrumentors, so one dispatch shows up as a single trace.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import (
    DEPLOYMENT_ENVIRONMENT,
    SERVICE_NAME,
    SERVICE_VERSION,
    Resource,
)
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import Span

from hello_dispatch.config import Settings
from hello_dispatch.infrastructure.telemetry.logging import get_logger

logger = get_logger(__name__)

TRACER_NAME = "hello_dispatch"

# The global provider can only be installed once per process
_provider: TracerProvider | None = None
_memory_exporter: InMemorySpanExporter | None = None


def configure_tracing(settings: Settings) -> TracerProvider:
    """Install the process-wide tracer provider.

    Spans go to the OTLP collector when ``otlp_endpoint`` is set. In the
    ``test`` environment they are also kept in memory for ``finished_spans``.
    Calling this again returns the provider already installed.
    """
    global _provider, _memory_exporter

    if _provider is not None:
        return _provider

    provider = TracerProvider(
        resource=Resource.create({
            SERVICE_NAME: settings.otel_service_name,
            SERVICE_VERSION: settings.version,
            DEPLOYMENT_ENVIRONMENT: settings.environment,
        })
    )

    if settings.otlp_endpoint:
        exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))

    if settings.environment == "test":
        _memory_exporter = InMemorySpanExporter()
        provider.add_span_processor(SimpleSpanProcessor(_memory_exporter))

    trace.set_tracer_provider(provider)
    _provider = provider

    logger.info(
        "Tracing enabled",
        extra={
            "service": settings.otel_service_name,
            "otlp_endpoint": settings.otlp_endpoint or None,
        },
    )
    return provider


def instrument_app(app: FastAPI) -> None:
    """Trace inbound requests on ``app`` and every outbound httpx call."""
    FastAPIInstrumentor.instrument_app(app)

    httpx_instrumentor = HTTPXClientInstrumentor()
    if not httpx_instrumentor.is_instrumented_by_opentelemetry:
        httpx_instrumentor.instrument()


@contextmanager
def create_span(name: str, attributes: dict[str, Any] | None = None) -> Iterator[Span]:
    """Start a span as the current span.

    An exception leaving the block is recorded on the span and marks it as
    failed before propagating.
    """
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(name, attributes=attributes) as span:
        yield span


def set_span_attributes(attributes: dict[str, Any]) -> None:
    """Set attributes on the current span, skipping None values."""
    span = trace.get_current_span()
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, value)


def get_current_trace_id() -> str | None:
    """Hex id of the active trace, or None outside a sampled span."""
    ctx = trace.get_current_span().get_span_context()
    return trace.format_trace_id(ctx.trace_id) if ctx.is_valid else None


def finished_spans() -> list[ReadableSpan]:
    """Spans kept in memory by the test environment, oldest first."""
    if _memory_exporter is None:
        return []
    return list(_memory_exporter.get_finished_spans())


def flush_tracing() -> None:
    """Flush pending spans to the exporters."""
    if _provider is not None:
        _provider.force_flush()
        logger.info("Tracing flushed")
