"""Liveness, readiness and service information endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    environment: str
    downstream_endpoint: str


class ReadinessResponse(BaseModel):
    ready: bool
    checks: dict[str, bool]
    stages: list[str]


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Service identity; dependencies are not probed."""
    settings = request.app.state.settings
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC).isoformat(),
        version=settings.version,
        environment=settings.environment,
        downstream_endpoint=settings.downstream_endpoint,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Ready once the dispatch pipeline has been built.

    ``stages`` lists the chain a dispatched name travels, entry first. The
    downstream responder is not called.
    """
    pipeline = getattr(request.app.state, "pipeline", None)
    checks = {"pipeline": pipeline is not None}
    return ReadinessResponse(
        ready=all(checks.values()),
        checks=checks,
        stages=pipeline.chain() if pipeline is not None else [],
    )


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
