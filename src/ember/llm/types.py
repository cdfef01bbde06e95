"""Provider-neutral message and response types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class StreamEventType(str, Enum):
    MESSAGE_START = "message_start"
    TEXT_DELTA = "text_delta"
    MESSAGE_END = "message_end"
    ERROR = "error"


@dataclass
class Message:
    """One turn; also the record format of the conversation log."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        """Raises KeyError or ValueError for records that are not messages."""
        content = data["content"]
        if not isinstance(content, str):
            raise ValueError(f"message content must be a string, got {content!r}")
        return cls(role=Role(data["role"]), content=content)


@dataclass
class Usage:
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class StreamChunk:
    """One piece of a streamed reply.

    TEXT_DELTA carries text in ``content``. MESSAGE_END carries ``usage`` when
    the provider reports it. ERROR carries the provider's detail in ``content``.
    """

    type: StreamEventType
    content: str | None = None
    usage: Usage | None = None


@dataclass
class CompletionResponse:
    message: Message
    usage: Usage | None = None
    stop_reason: str | None = None
    model: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.message.content

    @property
    def total_tokens(self) -> int:
        """Provider-reported total, or 0 when the provider sent no usage."""
        return self.usage.total_tokens if self.usage else 0
