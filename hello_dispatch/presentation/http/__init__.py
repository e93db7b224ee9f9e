"""HTTP presentation layer - REST API routes."""

from fastapi import APIRouter

from hello_dispatch.presentation.http.dispatch import router as dispatch_router
from hello_dispatch.presentation.http.health import router as health_router
from hello_dispatch.presentation.http.hello import router as hello_router
from hello_dispatch.presentation.http.metrics import router as metrics_router

# Main API router
api_router = APIRouter()

# Include sub-routers
api_router.include_router(health_router, tags=["Health"])
api_router.include_router(metrics_router, tags=["Metrics"])
api_router.include_router(dispatch_router, tags=["Dispatch"])
api_router.include_router(hello_router, tags=["Hello"])

__all__ = ["api_router"]
