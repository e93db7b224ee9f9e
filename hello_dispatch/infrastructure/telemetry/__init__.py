"""Telemetry infrastructure (logging, tracing, metrics)."""

from hello_dispatch.infrastructure.telemetry.logging import (
    ContextLogger,
    clear_request_context,
    configure_logging,
    get_logger,
    message_id_var,
    request_id_var,
    set_request_context,
)
from hello_dispatch.infrastructure.telemetry.metrics import (
    record_downstream_request,
    record_pipeline_run,
    record_stage_execution,
    set_service_info,
)
from hello_dispatch.infrastructure.telemetry.tracing import (
    configure_tracing,
    create_span,
    finished_spans,
    flush_tracing,
    get_current_trace_id,
    instrument_app,
    set_span_attributes,
)

__all__ = [
    # Logging
    "ContextLogger",
    "configure_logging",
    "get_logger",
    "set_request_context",
    "clear_request_context",
    "request_id_var",
    "message_id_var",
    # Tracing
    "configure_tracing",
    "create_span",
    "set_span_attributes",
    "get_current_trace_id",
    "finished_spans",
    "instrument_app",
    "flush_tracing",
    # Metrics
    "set_service_info",
    "record_pipeline_run",
    "record_stage_execution",
    "record_downstream_request",
]
