"""Base stage definitions."""

from abc import ABC, abstractmethod

from hello_dispatch.domain.message import Message


class Stage(ABC):
    """Base class for pipeline stages.

    Each stage receives a message, transforms it and hands it back. A
    stage that names ``forward_to`` passes its output on to that stage;
    otherwise the chain ends with it.
    """

    #: Stage to hand the message to next, or None for a terminal stage.
    forward_to: str | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Endpoint name used for entry and forward lookup."""
        ...

    @property
    def route_id(self) -> str:
        """Identifier used for logging and metrics."""
        return f"{self.name}-route"

    @abstractmethod
    async def execute(self, message: Message) -> Message:
        """Execute the stage.

        Args:
            message: In-flight message

        Returns:
            The transformed message
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, forward_to={self.forward_to!r})"
