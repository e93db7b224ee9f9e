"""Message model - the unit of work flowing through the dispatch pipeline."""

from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

STATUS_HEADER = "status"


@dataclass
class Message:
    """In-flight message.

    The body is replaced by stages as the message moves along the chain.
    Headers carry side metadata (such as the ``status`` tag) without
    touching the body.
    """

    body: Any
    headers: dict[str, Any] = field(default_factory=dict)
    message_id: str = field(default_factory=lambda: uuid4().hex)

    def __post_init__(self) -> None:
        if self.body is None:
            raise ValueError("Message body must not be None")

    def set_header(self, key: str, value: Any) -> None:
        """Set or overwrite a header."""
        self.headers[key] = value

    def get_header(self, key: str, default: Any = None) -> Any:
        """Read a header, falling back to ``default``."""
        return self.headers.get(key, default)

    def body_as_text(self) -> str:
        """Return the body normalized to text."""
        return normalize_body(self.body)


def normalize_body(value: Any) -> str:
    """Convert a body value to text.

    Bytes are decoded as UTF-8 with replacement of invalid sequences;
    anything else goes through ``str``.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)
