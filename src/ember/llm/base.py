"""Provider interface shared by the OpenAI and Anthropic backends."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from ember.llm.types import CompletionResponse, Message, Role, StreamChunk


class BackendError(Exception):
    """The provider reported a failure for the request itself."""


class StreamParseError(ValueError):
    """A single streamed event could not be decoded.

    Raised per event; the stream as a whole continues.
    """


def split_system(messages: list[Message]) -> tuple[str | None, list[dict[str, str]]]:
    """Separate system text from the turns both APIs take as a list.

    System contents are joined with a blank line. Turn order is preserved.
    """
    system = [m.content for m in messages if m.role == Role.SYSTEM]
    turns = [m.to_dict() for m in messages if m.role != Role.SYSTEM]
    return ("\n\n".join(system) if system else None), turns


class LLMProvider(ABC):
    """A chat backend that can answer in one piece or as a stream."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in model references, e.g. ``openai``."""
        ...

    @property
    @abstractmethod
    def default_model(self) -> str:
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ) -> CompletionResponse:
        """Send the conversation and wait for the whole reply.

        ``temperature=None`` leaves sampling at the API default. Transient
        failures are retried before an error is raised.
        """
        ...

    @abstractmethod
    def stream(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Send the conversation and yield the reply as it arrives.

        The first chunk is MESSAGE_START; the last is MESSAGE_END or ERROR.
        """
        ...
