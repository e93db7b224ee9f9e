"""Endpoint references for outbound calls.

An EndpointTemplate is built once from configuration. Each message gets
its own EndpointReference with the name added as an encoded query
parameter; the reference is dropped once the call completes.
"""

from dataclasses import dataclass

import httpx

DEFAULT_QUERY_PARAM = "name"


@dataclass(frozen=True)
class EndpointReference:
    """Absolute address of a single outbound call."""

    url: str

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True)
class EndpointTemplate:
    """Downstream base address plus the query parameter carrying the body."""

    base_url: str
    query_param: str = DEFAULT_QUERY_PARAM

    @classmethod
    def from_config(
        cls,
        endpoint: str,
        query_param: str = DEFAULT_QUERY_PARAM,
    ) -> "EndpointTemplate":
        """Build a template from a configured host/path.

        A value without a scheme (``localhost:8000/hello``) is treated as
        plain HTTP.
        """
        endpoint = endpoint.strip()
        if not endpoint:
            raise ValueError("Downstream endpoint must not be empty")
        if "://" not in endpoint:
            endpoint = f"http://{endpoint}"

        url = httpx.URL(endpoint)
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"Invalid downstream endpoint: {endpoint!r}")

        return cls(base_url=str(url), query_param=query_param)

    def resolve(self, value: str) -> EndpointReference:
        """Substitute ``value`` into the template as an encoded query parameter.

        Query parameters already present on the base address are kept.
        """
        url = httpx.URL(self.base_url).copy_set_param(self.query_param, value)
        return EndpointReference(url=str(url))
