"""Domain layer - message model, endpoint references and errors."""

from hello_dispatch.domain.endpoint import EndpointReference, EndpointTemplate
from hello_dispatch.domain.errors import (
    AppError,
    DownstreamUnavailableError,
    PipelineCancelledError,
    PipelineError,
    RouteCycleError,
    RouteNotFoundError,
    RoutingError,
    StageExecutionError,
)
from hello_dispatch.domain.message import STATUS_HEADER, Message, normalize_body

__all__ = [
    # Message
    "Message",
    "STATUS_HEADER",
    "normalize_body",
    # Endpoints
    "EndpointReference",
    "EndpointTemplate",
    # Errors
    "AppError",
    "RoutingError",
    "RouteNotFoundError",
    "RouteCycleError",
    "PipelineError",
    "StageExecutionError",
    "PipelineCancelledError",
    "DownstreamUnavailableError",
]
