"""Maps pipeline errors to HTTP responses.

The pipeline itself only raises typed errors; this is the one place that
turns them into transport statuses. Every error body has the shape
``{"error": {"code", "message", "details", "retryable"}}``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hello_dispatch.domain.errors import (
    AppError,
    DownstreamUnavailableError,
    PipelineCancelledError,
)
from hello_dispatch.infrastructure.telemetry.logging import get_logger
from hello_dispatch.infrastructure.telemetry.tracing import get_current_trace_id

logger = get_logger(__name__)

# Checked in order; anything else is a 500
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (DownstreamUnavailableError, 502),
    (PipelineCancelledError, 504),
)


def status_code_for(error: AppError) -> int:
    """HTTP status for an application error."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 500


def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: dict | None = None,
    retryable: bool = False,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
                "retryable": retryable,
            }
        },
    )


def error_handler_middleware(app: FastAPI) -> None:
    """Register the exception handlers on ``app``."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        status_code = status_code_for(exc)

        # A cancelled dispatch is reported, not treated as a failure
        if isinstance(exc, PipelineCancelledError):
            level = logging.INFO
        else:
            level = logging.ERROR if status_code >= 500 else logging.WARNING

        logger.log(
            level,
            f"Dispatch failed: {exc}",
            extra={
                "error_code": exc.code,
                "error_details": exc.details,
                "retryable": exc.retryable,
                "path": request.url.path,
                "status_code": status_code,
                "trace_id": get_current_trace_id(),
            },
        )
        return _error_response(status_code, exc.code, exc.message, exc.details, exc.retryable)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled exception",
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
        return _error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")
