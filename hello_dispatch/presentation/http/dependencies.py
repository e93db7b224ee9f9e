"""Shared FastAPI dependencies."""

from fastapi import Request

from hello_dispatch.application.pipelines.dispatch_pipeline import DispatchPipeline


def get_pipeline(request: Request) -> DispatchPipeline:
    """Return the pipeline built at application startup."""
    return request.app.state.pipeline
