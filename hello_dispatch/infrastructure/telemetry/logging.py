"""Structured logging with request and message correlation.

``configure_logging`` installs one stdout handler on the root logger. Its
``CorrelationFilter`` stamps every record with the ``request_id`` and
``message_id`` active where the record was created, and the formatters
render those ids next to any fields passed through ``extra``.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
message_id_var: ContextVar[str | None] = ContextVar("message_id", default=None)

_CORRELATION_FIELDS = ("request_id", "message_id")

# Attributes every LogRecord carries; anything else arrived via ``extra``
_STANDARD_ATTRS = (
    frozenset(vars(logging.makeLogRecord({})))
    | {"message", "asctime", "taskName"}
    | set(_CORRELATION_FIELDS)
)

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def set_request_context(
    request_id: str | None = None,
    message_id: str | None = None,
) -> None:
    """Set context variables for request correlation."""
    if request_id is not None:
        request_id_var.set(request_id)
    if message_id is not None:
        message_id_var.set(message_id)


def clear_request_context() -> None:
    """Clear all context variables."""
    request_id_var.set(None)
    message_id_var.set(None)


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields attached to ``record`` through ``extra``."""
    return {k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS}


class CorrelationFilter(logging.Filter):
    """Stamps records with the correlation ids of the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        record.message_id = message_id_var.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; None values are left out."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CORRELATION_FIELDS:
            payload[field] = getattr(record, field, None)
        payload.update(extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps({k: v for k, v in payload.items() if v is not None}, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%d %H:%M:%S")

        ids = [
            f"{label}={value[:8]}"
            for label, value in (
                ("req", getattr(record, "request_id", None)),
                ("msg", getattr(record, "message_id", None)),
            )
            if value
        ]
        origin = f"{record.name} [{', '.join(ids)}]" if ids else record.name

        line = f"{timestamp} | {record.levelname:8} | {origin} | {record.getMessage()}"
        if extra := extra_fields(record):
            line += " | " + " ".join(f"{k}={v}" for k, v in extra.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter merging bound fields into each call's ``extra``.

    Fields given at the call site win over fields bound with ``get_logger``.
    """

    def process(
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs


def configure_logging(
    level: str = "INFO",
    format_type: str = "json",
    service_name: str = "hello-dispatch",
) -> None:
    """Route all logging to stdout in the chosen format.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format_type: Output format ('json' or 'text')
        service_name: Service name for log identification
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if format_type == "json" else TextFormatter())
    handler.addFilter(CorrelationFilter())

    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured",
        extra={"service": service_name, "format": format_type},
    )


def get_logger(name: str, **extra: Any) -> ContextLogger:
    """Get a logger that adds ``extra`` to every record it emits."""
    return ContextLogger(logging.getLogger(name), extra)
