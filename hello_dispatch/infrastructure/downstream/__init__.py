"""Downstream responder integration."""

from hello_dispatch.infrastructure.downstream.client import DownstreamClient

__all__ = ["DownstreamClient"]
