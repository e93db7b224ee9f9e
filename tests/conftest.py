"""Pytest configuration and fixtures."""

import httpx
import pytest

from hello_dispatch.application.pipelines.dispatch_pipeline import (
    DispatchPipeline,
    create_dispatch_pipeline,
)
from hello_dispatch.config import Settings
from hello_dispatch.infrastructure.downstream import DownstreamClient
from tests.helpers import greeting_handler, make_settings


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return make_settings()


@pytest.fixture
def downstream_client(settings: Settings) -> DownstreamClient:
    """Downstream client wired to the in-process greeting stub."""
    return DownstreamClient(settings, transport=httpx.MockTransport(greeting_handler))


@pytest.fixture
def pipeline(settings: Settings, downstream_client: DownstreamClient) -> DispatchPipeline:
    """Dispatch pipeline talking to the greeting stub."""
    return create_dispatch_pipeline(settings, downstream_client)
