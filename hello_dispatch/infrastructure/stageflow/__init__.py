"""Stageflow infrastructure - interceptors."""

from hello_dispatch.infrastructure.stageflow.interceptors import (
    MetricsInterceptor,
    StageInterceptor,
    TracingInterceptor,
)

__all__ = [
    "StageInterceptor",
    "TracingInterceptor",
    "MetricsInterceptor",
]
