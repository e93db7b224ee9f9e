"""Dispatcher stage - pipeline entry point."""

from hello_dispatch.application.pipelines.stages.base import Stage
from hello_dispatch.domain.message import Message
from hello_dispatch.infrastructure.telemetry import get_logger

logger = get_logger(__name__)

DISPATCHER = "dispatcher"


class DispatcherStage(Stage):
    """Logs receipt and forwards the message unchanged."""

    def __init__(self, forward_to: str):
        self.forward_to = forward_to

    @property
    def name(self) -> str:
        return DISPATCHER

    async def execute(self, message: Message) -> Message:
        logger.info(f"incoming request, body = {message.body}")
        return message
