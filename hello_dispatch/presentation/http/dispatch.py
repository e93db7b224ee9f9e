"""Dispatch endpoint - inbound gateway into the dispatch pipeline."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from hello_dispatch.application.pipelines.dispatch_pipeline import DispatchPipeline
from hello_dispatch.presentation.http.dependencies import get_pipeline

router = APIRouter()


@router.get("/dispatch", response_class=PlainTextResponse)
async def dispatch(
    name: str = Query(...),
    pipeline: DispatchPipeline = Depends(get_pipeline),
) -> str:
    """Run ``name`` through the pipeline and return its text result.

    Pipeline errors propagate to the registered exception handlers, which
    turn them into transport statuses.
    """
    return await pipeline.run(name)
