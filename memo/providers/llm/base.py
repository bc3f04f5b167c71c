from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator


@dataclass(frozen=True)
class LLMMessage:
    role: str  # system, user, assistant
    content: str


@dataclass(frozen=True)
class StreamRequest:
    """One streaming completion call. Built once per client call, never retried."""

    system_prompt: str
    messages: tuple[LLMMessage, ...]
    model: str
    temperature: float
    stream: bool = field(default=True, init=False)

    def to_payload(self) -> dict[str, Any]:
        """Chat-completions request body."""
        messages = [{"role": "system", "content": self.system_prompt}]
        messages.extend({"role": m.role, "content": m.content} for m in self.messages)
        return {
            "model": self.model,
            "messages": messages,
            "stream": self.stream,
            "temperature": self.temperature,
        }


class UpstreamStream(ABC):
    """An open upstream response producing raw event lines."""

    @abstractmethod
    def iter_lines(self) -> AsyncIterator[str]:
        """Yield raw lines as the transport delivers them."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release the upstream connection."""


class BaseLLMProvider(ABC):
    """Base class for streaming completion providers."""

    def __init__(self, api_key: str | None, model_name: str, base_url: str | None = None):
        self.api_key = api_key
        self.model_name = model_name
        self.base_url = base_url

    @abstractmethod
    async def open_stream(self, request: StreamRequest) -> UpstreamStream:
        """Open a streaming completion; raise UpstreamUnavailableError on failure."""

    async def aclose(self) -> None:
        """Release provider resources."""
