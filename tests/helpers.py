"""Shared test helpers: stub downstream responder and settings builder."""

import httpx

from hello_dispatch.config import Settings

DOWNSTREAM_URL = "http://downstream.test/hello"


def greeting_handler(request: httpx.Request) -> httpx.Response:
    """Stub downstream responder implementing the /hello contract."""
    if request.url.path != "/hello":
        return httpx.Response(404, text="not found")
    name = request.url.params.get("name")
    if name is None:
        return httpx.Response(400, text="missing name")
    return httpx.Response(200, text=f"Hi, {name}")


def make_settings(**overrides) -> Settings:
    """Test settings with defaults, isolated from any local .env file."""
    values = {
        "environment": "test",
        "downstream_endpoint": DOWNSTREAM_URL,
        "log_level": "DEBUG",
        "log_format": "text",
        "otel_enabled": False,
        "prometheus_enabled": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)
