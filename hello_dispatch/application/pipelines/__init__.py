"""Pipelines - stage chains and their factories."""

from hello_dispatch.application.pipelines.dispatch_pipeline import (
    PIPELINE_NAME,
    DispatchPipeline,
    create_dispatch_pipeline,
)

__all__ = ["PIPELINE_NAME", "DispatchPipeline", "create_dispatch_pipeline"]
