"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI

from hello_dispatch.application.pipelines.dispatch_pipeline import create_dispatch_pipeline
from hello_dispatch.config import Settings, get_settings
from hello_dispatch.infrastructure.downstream import DownstreamClient
from hello_dispatch.infrastructure.middleware import (
    RequestContextMiddleware,
    error_handler_middleware,
)
from hello_dispatch.infrastructure.telemetry import configure_logging, get_logger
from hello_dispatch.infrastructure.telemetry.metrics import set_service_info
from hello_dispatch.infrastructure.telemetry.tracing import (
    configure_tracing,
    flush_tracing,
    instrument_app,
)
from hello_dispatch.presentation.http import api_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings

    logger.info(
        "Starting hello-dispatch",
        extra={
            "version": settings.version,
            "environment": settings.environment,
            "downstream_endpoint": settings.downstream_endpoint,
        },
    )

    yield

    await app.state.downstream_client.close()
    if settings.otel_enabled:
        flush_tracing()
    logger.info("hello-dispatch stopped")


def create_app(
    settings: Settings | None = None,
    downstream_client: DownstreamClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The dispatch pipeline is built here, once, so a misconfigured route
    chain or downstream endpoint fails at startup.

    Args:
        settings: Optional settings override for testing
        downstream_client: Optional client override for testing

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = get_settings()

    configure_logging(
        level=settings.log_level,
        format_type=settings.log_format,
        service_name=settings.otel_service_name,
    )

    if settings.otel_enabled:
        configure_tracing(settings)

    if settings.prometheus_enabled:
        set_service_info(
            version=settings.version,
            environment=settings.environment,
        )

    if downstream_client is None:
        downstream_client = DownstreamClient(settings)

    pipeline = create_dispatch_pipeline(settings, downstream_client)

    app = FastAPI(
        title="hello-dispatch",
        description="Dispatches names through a stage pipeline to a greeting service",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )
    app.state.settings = settings
    app.state.downstream_client = downstream_client
    app.state.pipeline = pipeline

    if settings.otel_enabled:
        instrument_app(app)

    app.add_middleware(RequestContextMiddleware)

    error_handler_middleware(app)

    app.include_router(api_router)

    return app


def run() -> None:
    """Console entry point: serve the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "hello_dispatch.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
