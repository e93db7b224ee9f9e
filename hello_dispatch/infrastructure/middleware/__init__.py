"""Middleware infrastructure."""

from hello_dispatch.infrastructure.middleware.error_handler import error_handler_middleware
from hello_dispatch.infrastructure.middleware.request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware", "error_handler_middleware"]
