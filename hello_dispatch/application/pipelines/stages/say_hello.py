"""SayHello stage - calls the downstream greeting responder."""

from typing import Protocol

from hello_dispatch.application.pipelines.stages.base import Stage
from hello_dispatch.domain.endpoint import EndpointReference, EndpointTemplate
from hello_dispatch.domain.message import STATUS_HEADER, Message, normalize_body
from hello_dispatch.infrastructure.telemetry import get_logger

logger = get_logger(__name__)

SAY_HELLO = "sayHello"
DISPATCHED = "dispatched"


class TextFetcher(Protocol):
    """Anything that can GET an endpoint and return its payload as text."""

    async def fetch_text(self, endpoint: EndpointReference) -> str:
        ...


class SayHelloStage(Stage):
    """Tags the message and replaces its body with the downstream greeting.

    Failures of the outbound call surface as DownstreamUnavailableError
    from the fetcher; the stage does not retry.
    """

    def __init__(self, template: EndpointTemplate, fetcher: TextFetcher):
        self.template = template
        self.fetcher = fetcher

    @property
    def name(self) -> str:
        return SAY_HELLO

    async def execute(self, message: Message) -> Message:
        logger.info("dispatching to /hello endpoint")
        message.set_header(STATUS_HEADER, DISPATCHED)

        endpoint = self.template.resolve(normalize_body(message.body))
        response = await self.fetcher.fetch_text(endpoint)

        message.body = normalize_body(response)
        return message
