"""Dispatch pipeline - runs a linear chain of named stages against one message."""

import asyncio
import time
from collections.abc import Iterable, Mapping, Sequence
from functools import partial
from types import MappingProxyType
from typing import Any

from hello_dispatch.application.pipelines.stages.base import Stage
from hello_dispatch.application.pipelines.stages.dispatcher import DISPATCHER, DispatcherStage
from hello_dispatch.application.pipelines.stages.say_hello import (
    SAY_HELLO,
    SayHelloStage,
    TextFetcher,
)
from hello_dispatch.config import Settings
from hello_dispatch.domain.endpoint import EndpointTemplate
from hello_dispatch.domain.errors import (
    AppError,
    PipelineCancelledError,
    RouteCycleError,
    RouteNotFoundError,
    RoutingError,
    StageExecutionError,
)
from hello_dispatch.domain.message import Message
from hello_dispatch.infrastructure.stageflow.interceptors import (
    MetricsInterceptor,
    StageInterceptor,
    TracingInterceptor,
)
from hello_dispatch.infrastructure.telemetry import get_logger, message_id_var
from hello_dispatch.infrastructure.telemetry.metrics import PIPELINE_ACTIVE, record_pipeline_run

logger = get_logger(__name__)

PIPELINE_NAME = "dispatch"


class DispatchPipeline:
    """Immutable chain of stages reachable from a named entry stage.

    Stages are registered by name once, at construction. Every forward
    reference is checked then, so a misconfigured chain fails at startup
    rather than per request. The pipeline holds no per-run state and can
    be shared by any number of concurrent requests.
    """

    def __init__(
        self,
        stages: Iterable[Stage],
        interceptors: Sequence[StageInterceptor] = (),
        timeout_seconds: float | None = None,
        metrics_enabled: bool = True,
        name: str = PIPELINE_NAME,
    ):
        self.name = name
        self.timeout_seconds = timeout_seconds
        self.metrics_enabled = metrics_enabled
        self._interceptors = tuple(interceptors)

        registry: dict[str, Stage] = {}
        route_ids: set[str] = set()
        for stage in stages:
            if stage.name in registry:
                raise RoutingError(
                    message=f"Duplicate stage name {stage.name!r}",
                    details={"stage": stage.name},
                )
            if stage.route_id in route_ids:
                raise RoutingError(
                    message=f"Duplicate route id {stage.route_id!r}",
                    details={"route_id": stage.route_id},
                )
            registry[stage.name] = stage
            route_ids.add(stage.route_id)

        self._validate(registry)
        self._stages: Mapping[str, Stage] = MappingProxyType(registry)

    @staticmethod
    def _validate(registry: dict[str, Stage]) -> None:
        for stage in registry.values():
            if stage.forward_to is not None and stage.forward_to not in registry:
                raise RouteNotFoundError(
                    message=f"Stage {stage.name!r} forwards to unknown stage {stage.forward_to!r}",
                    route=stage.forward_to,
                    details={"stage": stage.name},
                )

        for start in registry:
            seen: set[str] = set()
            current: str | None = start
            while current is not None:
                if current in seen:
                    raise RouteCycleError(
                        message=f"Forward chain starting at {start!r} loops back to {current!r}",
                        route=current,
                    )
                seen.add(current)
                current = registry[current].forward_to

    @property
    def stages(self) -> Mapping[str, Stage]:
        """Read-only view of the registered stages, keyed by name."""
        return self._stages

    def chain(self, entry: str = DISPATCHER) -> list[str]:
        """Names of the stages a message entering at ``entry`` visits, in order."""
        if entry not in self._stages:
            raise RouteNotFoundError(message=f"No stage registered for {entry!r}", route=entry)
        names = []
        current: str | None = entry
        while current is not None:
            names.append(current)
            current = self._stages[current].forward_to
        return names

    async def run(self, body: Any, entry: str = DISPATCHER) -> str:
        """Run the chain and return the terminal body as text.

        Args:
            body: Initial message body (the name)
            entry: Name of the stage to start at

        Returns:
            Final body, normalized to text

        Raises:
            RouteNotFoundError: Unknown entry stage; nothing is executed
            StageExecutionError: A stage raised an unexpected exception
            DownstreamUnavailableError: The outbound call failed
            PipelineCancelledError: Deadline elapsed or the caller went away.
                Any cancellation of the awaiting task counts as the caller going
                away, including an ``asyncio.timeout`` the caller wraps around
                this call: it surfaces here as ``cancel_reason="caller_cancelled"``
                rather than as ``TimeoutError``.
        """
        message = await self.process(body, entry)
        return message.body_as_text()

    async def process(self, body: Any, entry: str = DISPATCHER) -> Message:
        """Run the chain and return the final message, headers included."""
        if entry not in self._stages:
            raise RouteNotFoundError(message=f"No stage registered for {entry!r}", route=entry)

        message = Message(body=body)
        token = message_id_var.set(message.message_id)
        start_time = time.perf_counter()
        status = "failure"

        if self.metrics_enabled:
            PIPELINE_ACTIVE.labels(pipeline_name=self.name).inc()

        try:
            try:
                async with asyncio.timeout(self.timeout_seconds):
                    result = await self._execute(entry, message)
            except TimeoutError as e:
                raise PipelineCancelledError(
                    message="Dispatch deadline exceeded",
                    message_id=message.message_id,
                    cancel_reason="deadline_exceeded",
                    details={"timeout_seconds": self.timeout_seconds},
                ) from e
            except asyncio.CancelledError as e:
                raise PipelineCancelledError(
                    message="Dispatch cancelled by caller",
                    message_id=message.message_id,
                    cancel_reason="caller_cancelled",
                ) from e

            status = "success"
            logger.info(
                "Dispatch pipeline completed",
                extra={
                    "pipeline": self.name,
                    "duration_seconds": round(time.perf_counter() - start_time, 3),
                },
            )
            return result

        except PipelineCancelledError as e:
            status = "cancelled"
            logger.info(
                "Dispatch pipeline cancelled",
                extra={"pipeline": self.name, "cancel_reason": e.cancel_reason},
            )
            raise

        except AppError as e:
            logger.warning(
                "Dispatch pipeline failed",
                extra={"pipeline": self.name, "error_code": e.code},
            )
            raise

        finally:
            if self.metrics_enabled:
                PIPELINE_ACTIVE.labels(pipeline_name=self.name).dec()
                record_pipeline_run(self.name, status, time.perf_counter() - start_time)
            message_id_var.reset(token)

    async def _execute(self, entry: str, message: Message) -> Message:
        stage = self._stages[entry]
        while True:
            logger.info(
                "Executing stage",
                extra={"stage": stage.name, "route_id": stage.route_id, "body": message.body},
            )
            message = await self._run_stage(stage, message)

            if stage.forward_to is None:
                return message

            # Forward targets were checked when the pipeline was built
            stage = self._stages[stage.forward_to]

    async def _run_stage(self, stage: Stage, message: Message) -> Message:
        """Run one stage through the interceptor chain."""
        func = partial(stage.execute, message)
        for interceptor in reversed(self._interceptors):
            func = partial(interceptor.wrap, stage.route_id, func)

        try:
            result = await func()
        except AppError:
            raise
        except Exception as e:
            logger.error(
                "Stage execution failed",
                extra={
                    "route_id": stage.route_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            raise StageExecutionError(
                message=f"Stage {stage.route_id} failed: {e}",
                stage=stage.route_id,
                message_id=message.message_id,
                details={"error_type": type(e).__name__},
            ) from e

        if not isinstance(result, Message):
            raise StageExecutionError(
                message=f"Stage {stage.route_id} returned {type(result).__name__}, expected Message",
                stage=stage.route_id,
                message_id=message.message_id,
            )
        if result.body is None:
            raise StageExecutionError(
                message=f"Stage {stage.route_id} returned a message with no body",
                stage=stage.route_id,
                message_id=message.message_id,
            )
        return result


def create_dispatch_pipeline(settings: Settings, fetcher: TextFetcher) -> DispatchPipeline:
    """Factory function to create the dispatch pipeline.

    Args:
        settings: Application settings
        fetcher: Client used by the sayHello stage for the outbound call

    Returns:
        Configured DispatchPipeline instance
    """
    template = EndpointTemplate.from_config(settings.downstream_endpoint)

    interceptors: list[StageInterceptor] = []
    if settings.otel_enabled:
        interceptors.append(TracingInterceptor(PIPELINE_NAME))
    if settings.prometheus_enabled:
        interceptors.append(MetricsInterceptor(PIPELINE_NAME))

    pipeline = DispatchPipeline(
        stages=[
            DispatcherStage(forward_to=SAY_HELLO),
            SayHelloStage(template, fetcher),
        ],
        interceptors=interceptors,
        timeout_seconds=settings.dispatch_timeout_seconds,
        metrics_enabled=settings.prometheus_enabled,
    )

    logger.info(
        "Dispatch pipeline built",
        extra={
            "stages": pipeline.chain(),
            "downstream_endpoint": template.base_url,
        },
    )
    return pipeline
