"""Stage interceptors: observers around each stage execution.

The pipeline wraps every stage call as ``interceptor.wrap(route_id, func)``,
first interceptor outermost. Interceptors see stage entry and exit and
must hand back exactly what the stage returned, or re-raise what it raised.
"""

import time
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

from hello_dispatch.infrastructure.telemetry import (
    create_span,
    record_stage_execution,
    set_span_attributes,
)

T = TypeVar("T")


class StageInterceptor(Protocol):
    """Wraps a single stage execution."""

    async def wrap(self, route_id: str, func: Callable[[], Awaitable[T]]) -> T:
        ...


class TracingInterceptor:
    """One OpenTelemetry span per stage, named ``<pipeline>.<route id>``."""

    def __init__(self, pipeline_name: str):
        self.pipeline_name = pipeline_name

    async def wrap(self, route_id: str, func: Callable[[], Awaitable[T]]) -> T:
        attributes = {"pipeline": self.pipeline_name, "route_id": route_id}
        with create_span(f"{self.pipeline_name}.{route_id}", attributes=attributes):
            start = time.perf_counter()
            try:
                return await func()
            finally:
                set_span_attributes({"duration_ms": int((time.perf_counter() - start) * 1000)})


class MetricsInterceptor:
    """Counts stage executions by outcome and observes their latency."""

    def __init__(self, pipeline_name: str):
        self.pipeline_name = pipeline_name

    async def wrap(self, route_id: str, func: Callable[[], Awaitable[T]]) -> T:
        start = time.perf_counter()
        status = "failure"
        try:
            result = await func()
            status = "success"
            return result
        finally:
            record_stage_execution(
                pipeline_name=self.pipeline_name,
                stage_name=route_id,
                status=status,
                duration_seconds=time.perf_counter() - start,
            )
