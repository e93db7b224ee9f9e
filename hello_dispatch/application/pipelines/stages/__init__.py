"""Pipeline stages - building blocks for the dispatch pipeline."""

from hello_dispatch.application.pipelines.stages.base import Stage
from hello_dispatch.application.pipelines.stages.dispatcher import DISPATCHER, DispatcherStage
from hello_dispatch.application.pipelines.stages.say_hello import (
    DISPATCHED,
    SAY_HELLO,
    SayHelloStage,
    TextFetcher,
)

__all__ = [
    # Base
    "Stage",
    # Entry
    "DISPATCHER",
    "DispatcherStage",
    # Downstream call
    "SAY_HELLO",
    "DISPATCHED",
    "SayHelloStage",
    "TextFetcher",
]
