"""Tests for the dispatch pipeline engine."""

import asyncio

import httpx
import pytest

from hello_dispatch.application.pipelines.dispatch_pipeline import (
    DispatchPipeline,
    create_dispatch_pipeline,
)
from hello_dispatch.application.pipelines.stages import DISPATCHED, Stage
from hello_dispatch.domain.errors import (
    DownstreamUnavailableError,
    PipelineCancelledError,
    RouteCycleError,
    RouteNotFoundError,
    RoutingError,
    StageExecutionError,
)
from hello_dispatch.domain.message import STATUS_HEADER, Message
from hello_dispatch.infrastructure.downstream import DownstreamClient
from tests.helpers import greeting_handler, make_settings


class RecordingStage(Stage):
    """Test stage that records the bodies it sees."""

    def __init__(self, name: str, forward_to: str | None = None, suffix: str = ""):
        self._name = name
        self.forward_to = forward_to
        self.suffix = suffix
        self.seen: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    async def execute(self, message: Message) -> Message:
        self.seen.append(message.body)
        message.body = f"{message.body}{self.suffix}"
        return message


class BoomStage(Stage):
    @property
    def name(self) -> str:
        return "boom"

    async def execute(self, message: Message) -> Message:
        raise RuntimeError("kaput")


class NotAMessageStage(Stage):
    @property
    def name(self) -> str:
        return "broken"

    async def execute(self, message: Message) -> Message:
        return "not a message"  # type: ignore[return-value]


class NullingStage(Stage):
    @property
    def name(self) -> str:
        return "nulling"

    async def execute(self, message: Message) -> Message:
        message.body = None
        return message


class RecordingInterceptor:
    def __init__(self, label: str, calls: list[str]):
        self.label = label
        self.calls = calls

    async def wrap(self, route_id, func):
        self.calls.append(f"{self.label}:enter:{route_id}")
        try:
            return await func()
        finally:
            self.calls.append(f"{self.label}:exit:{route_id}")


def make_pipeline(handler, **settings_overrides) -> DispatchPipeline:
    settings = make_settings(**settings_overrides)
    client = DownstreamClient(settings, transport=httpx.MockTransport(handler))
    return create_dispatch_pipeline(settings, client)


class TestPipelineConstruction:
    def test_default_chain(self, pipeline):
        assert pipeline.chain() == ["dispatcher", "sayHello"]
        assert set(pipeline.stages) == {"dispatcher", "sayHello"}
        assert pipeline.stages["dispatcher"].route_id == "dispatcher-route"
        assert pipeline.stages["sayHello"].route_id == "sayHello-route"

    def test_stages_are_read_only(self, pipeline):
        with pytest.raises(TypeError):
            pipeline.stages["extra"] = RecordingStage("extra")  # type: ignore[index]

    def test_unknown_forward_fails_at_build(self):
        with pytest.raises(RouteNotFoundError) as exc_info:
            DispatchPipeline([RecordingStage("a", forward_to="missing")])

        assert exc_info.value.route == "missing"

    def test_cycle_fails_at_build(self):
        with pytest.raises(RouteCycleError):
            DispatchPipeline([
                RecordingStage("a", forward_to="b"),
                RecordingStage("b", forward_to="a"),
            ])

    def test_self_forward_fails_at_build(self):
        with pytest.raises(RouteCycleError):
            DispatchPipeline([RecordingStage("a", forward_to="a")])

    def test_duplicate_name_fails_at_build(self):
        with pytest.raises(RoutingError):
            DispatchPipeline([RecordingStage("a"), RecordingStage("a")])

    def test_chain_unknown_entry(self, pipeline):
        with pytest.raises(RouteNotFoundError):
            pipeline.chain("nowhere")


class TestPipelineExecution:
    @pytest.mark.asyncio
    async def test_greets_name(self, pipeline):
        assert await pipeline.run("Alice") == "Hi, Alice"

    @pytest.mark.asyncio
    async def test_stages_run_in_order(self):
        first = RecordingStage("first", forward_to="second", suffix="-1")
        second = RecordingStage("second", forward_to="third", suffix="-2")
        third = RecordingStage("third", suffix="-3")
        pipeline = DispatchPipeline([third, first, second], metrics_enabled=False)

        result = await pipeline.run("x", entry="first")

        assert result == "x-1-2-3"
        assert first.seen == ["x"]
        assert second.seen == ["x-1"]
        assert third.seen == ["x-1-2"]

    @pytest.mark.asyncio
    async def test_entry_other_than_dispatcher(self, pipeline):
        assert await pipeline.run("Bob", entry="sayHello") == "Hi, Bob"

    @pytest.mark.asyncio
    async def test_status_header_set(self, pipeline):
        message = await pipeline.process("Alice")

        assert message.body == "Hi, Alice"
        assert message.get_header(STATUS_HEADER) == DISPATCHED

    @pytest.mark.asyncio
    async def test_runs_are_independent(self, pipeline):
        first = await pipeline.process("Alice")
        first.set_header("leak", True)
        second = await pipeline.process("Alice")

        assert first is not second
        assert first.message_id != second.message_id
        assert second.headers == {STATUS_HEADER: DISPATCHED}
        assert first.body == second.body == "Hi, Alice"

    @pytest.mark.asyncio
    async def test_unknown_entry_executes_nothing(self):
        stage = RecordingStage("only")
        pipeline = DispatchPipeline([stage], metrics_enabled=False)

        with pytest.raises(RouteNotFoundError) as exc_info:
            await pipeline.run("x", entry="missing")

        assert exc_info.value.route == "missing"
        assert stage.seen == []

    @pytest.mark.asyncio
    async def test_stage_exception_wrapped(self):
        upstream = RecordingStage("start", forward_to="boom")
        pipeline = DispatchPipeline([upstream, BoomStage()], metrics_enabled=False)

        with pytest.raises(StageExecutionError) as exc_info:
            await pipeline.run("x", entry="start")

        error = exc_info.value
        assert error.stage == "boom-route"
        assert error.details["error_type"] == "RuntimeError"
        assert isinstance(error.__cause__, RuntimeError)
        assert upstream.seen == ["x"]

    @pytest.mark.asyncio
    async def test_non_message_result_rejected(self):
        pipeline = DispatchPipeline([NotAMessageStage()], metrics_enabled=False)

        with pytest.raises(StageExecutionError) as exc_info:
            await pipeline.run("x", entry="broken")

        assert exc_info.value.stage == "broken-route"

    @pytest.mark.asyncio
    async def test_message_without_body_rejected(self):
        pipeline = DispatchPipeline([NullingStage()], metrics_enabled=False)

        with pytest.raises(StageExecutionError) as exc_info:
            await pipeline.run("Alice", entry="nulling")

        assert exc_info.value.stage == "nulling-route"
        assert "no body" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_interceptors_wrap_each_stage_in_order(self):
        calls: list[str] = []
        pipeline = DispatchPipeline(
            [RecordingStage("a", forward_to="b"), RecordingStage("b")],
            interceptors=[
                RecordingInterceptor("outer", calls),
                RecordingInterceptor("inner", calls),
            ],
            metrics_enabled=False,
        )

        await pipeline.run("x", entry="a")

        assert calls == [
            "outer:enter:a-route",
            "inner:enter:a-route",
            "inner:exit:a-route",
            "outer:exit:a-route",
            "outer:enter:b-route",
            "inner:enter:b-route",
            "inner:exit:b-route",
            "outer:exit:b-route",
        ]

    @pytest.mark.asyncio
    async def test_metrics_enabled_run(self):
        pipeline = make_pipeline(greeting_handler, prometheus_enabled=True)

        assert await pipeline.run("Metrics") == "Hi, Metrics"


class TestDownstreamFailures:
    @pytest.mark.asyncio
    async def test_unreachable_downstream(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        pipeline = make_pipeline(refuse)

        with pytest.raises(DownstreamUnavailableError) as exc_info:
            await pipeline.run("Alice")

        assert exc_info.value.retryable is True
        assert "name=Alice" in exc_info.value.endpoint

    @pytest.mark.asyncio
    async def test_non_success_status(self):
        def fail(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="maintenance")

        pipeline = make_pipeline(fail)

        with pytest.raises(DownstreamUnavailableError) as exc_info:
            await pipeline.run("Alice")

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_no_retry(self):
        calls = []

        def fail(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        pipeline = make_pipeline(fail)

        with pytest.raises(DownstreamUnavailableError):
            await pipeline.run("Alice")

        assert len(calls) == 1


class TestEncoding:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["Jane Doe", "O'Brien", "A&B=C", "Zoë", "50% off"])
    async def test_names_round_trip(self, name):
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return greeting_handler(request)

        pipeline = make_pipeline(handler)

        assert await pipeline.run(name) == f"Hi, {name}"
        assert seen[0].params["name"] == name
        assert b" " not in seen[0].query


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_runs_do_not_mix(self):
        async def slow_greeting(request: httpx.Request) -> httpx.Response:
            name = request.url.params["name"]
            # Later names answer first so completions interleave
            await asyncio.sleep(0.001 * (50 - int(name.split("-")[1])))
            return httpx.Response(200, text=f"Hi, {name}")

        pipeline = make_pipeline(slow_greeting)
        names = [f"user-{i}" for i in range(50)]

        results = await asyncio.gather(*(pipeline.process(n) for n in names))

        assert [m.body for m in results] == [f"Hi, {n}" for n in names]
        assert len({m.message_id for m in results}) == len(names)
        assert all(m.headers == {STATUS_HEADER: DISPATCHED} for m in results)

    @pytest.mark.asyncio
    async def test_alice_and_bob(self, pipeline):
        alice, bob = await asyncio.gather(pipeline.run("Alice"), pipeline.run("Bob"))

        assert alice == "Hi, Alice"
        assert bob == "Hi, Bob"


class TestCancellation:
    @pytest.mark.asyncio
    async def test_deadline_cancels_outbound_call(self):
        outbound_cancelled = asyncio.Event()

        async def hang(request: httpx.Request) -> httpx.Response:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                outbound_cancelled.set()
                raise
            return httpx.Response(200, text="too late")

        pipeline = make_pipeline(hang, dispatch_timeout_ms=50)

        with pytest.raises(PipelineCancelledError) as exc_info:
            await pipeline.run("Alice")

        assert exc_info.value.cancel_reason == "deadline_exceeded"
        assert outbound_cancelled.is_set()

    @pytest.mark.asyncio
    async def test_caller_cancel(self):
        started = asyncio.Event()
        outbound_cancelled = asyncio.Event()

        async def hang(request: httpx.Request) -> httpx.Response:
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                outbound_cancelled.set()
                raise
            return httpx.Response(200, text="too late")

        pipeline = make_pipeline(hang)
        task = asyncio.create_task(pipeline.run("Alice"))
        await asyncio.wait_for(started.wait(), timeout=1)

        task.cancel()

        with pytest.raises(PipelineCancelledError) as exc_info:
            await task

        assert exc_info.value.cancel_reason == "caller_cancelled"
        assert outbound_cancelled.is_set()

    @pytest.mark.asyncio
    async def test_deadline_not_hit(self):
        pipeline = make_pipeline(greeting_handler, dispatch_timeout_ms=5000)

        assert await pipeline.run("Alice") == "Hi, Alice"

    @pytest.mark.asyncio
    async def test_enclosing_timeout_reported_as_caller_cancel(self):
        async def hang(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(10)
            return httpx.Response(200, text="too late")

        pipeline = make_pipeline(hang)

        with pytest.raises(PipelineCancelledError) as exc_info:
            async with asyncio.timeout(0.05):
                await pipeline.run("Alice")

        assert exc_info.value.cancel_reason == "caller_cancelled"
        assert asyncio.current_task().cancelling() == 0
