"""HTTP client for the downstream greeting responder."""

import time

import httpx

from hello_dispatch.config import Settings
from hello_dispatch.domain.endpoint import EndpointReference
from hello_dispatch.domain.errors import DownstreamUnavailableError
from hello_dispatch.infrastructure.telemetry.logging import get_logger
from hello_dispatch.infrastructure.telemetry.metrics import record_downstream_request

logger = get_logger(__name__)


class DownstreamClient:
    """Issues GET requests to the downstream responder and returns text.

    One pooled ``httpx.AsyncClient`` is shared by all concurrent requests.
    No retries are attempted here.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_seconds = settings.downstream_timeout_seconds
        self.metrics_enabled = settings.prometheus_enabled
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                timeout=self.timeout_seconds,
                headers={"Accept": "text/plain"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_text(self, endpoint: EndpointReference) -> str:
        """GET the endpoint and return the response payload as text.

        Raises:
            DownstreamUnavailableError: On transport failure, timeout or a
                non-success status.
        """
        logger.debug("Calling downstream", extra={"endpoint": endpoint.url})
        start = time.perf_counter()

        try:
            response = await self.client.get(endpoint.url)
        except httpx.TimeoutException as e:
            self._record("timeout", start)
            raise DownstreamUnavailableError(
                message="Downstream request timed out",
                endpoint=endpoint.url,
                retryable=True,
                details={"error": str(e) or type(e).__name__},
            ) from e
        except httpx.HTTPError as e:
            self._record("transport_error", start)
            raise DownstreamUnavailableError(
                message=f"Downstream unreachable: {type(e).__name__}",
                endpoint=endpoint.url,
                retryable=True,
                details={"error": str(e) or type(e).__name__},
            ) from e

        if not response.is_success:
            self._record("http_error", start)
            raise DownstreamUnavailableError(
                message=f"Downstream returned status {response.status_code}",
                endpoint=endpoint.url,
                status_code=response.status_code,
                retryable=response.status_code >= 500,
                details={"status_code": response.status_code},
            )

        self._record("success", start)
        return response.text

    def _record(self, status: str, start: float) -> None:
        if self.metrics_enabled:
            record_downstream_request(status, time.perf_counter() - start)
