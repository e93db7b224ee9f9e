"""Typed error hierarchy for hello-dispatch.

All application errors inherit from AppError and provide:
- code: Machine-readable error code
- message: Human-readable description
- details: Additional context as dict
- retryable: Whether the operation can be retried
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class AppError(Exception):
    """Base application error with full context."""

    code: str
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    retryable: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __post_init__(self) -> None:
        super().__init__(str(self))

    def to_dict(self) -> dict[str, Any]:
        """Serialize error for API responses and logging."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat(),
        }


# --- Routing Errors ---


@dataclass
class RoutingError(AppError):
    """Pipeline routing is misconfigured."""

    code: str = "ROUTING_ERROR"
    retryable: bool = False


@dataclass
class RouteNotFoundError(RoutingError):
    """Entry or forward stage is not registered."""

    code: str = "ROUTE_NOT_FOUND"
    route: str = ""


@dataclass
class RouteCycleError(RoutingError):
    """Forward references loop back onto an earlier stage."""

    code: str = "ROUTE_CYCLE"
    route: str = ""


# --- Pipeline Errors ---


@dataclass
class PipelineError(AppError):
    """Pipeline execution failed."""

    code: str = "PIPELINE_ERROR"
    stage: str = ""
    message_id: str = ""


@dataclass
class StageExecutionError(PipelineError):
    """A stage transformation raised an unexpected exception."""

    code: str = "STAGE_EXECUTION_FAILED"


@dataclass
class PipelineCancelledError(PipelineError):
    """Pipeline was cancelled (not necessarily an error)."""

    code: str = "PIPELINE_CANCELLED"
    retryable: bool = False
    cancel_reason: str = ""


# --- Downstream Errors ---


@dataclass
class DownstreamUnavailableError(AppError):
    """Downstream call failed or returned a non-success status."""

    code: str = "DOWNSTREAM_UNAVAILABLE"
    endpoint: str = ""
    status_code: int | None = None
