"""
Server-Sent Events (SSE) streaming support for the Memo relay.
Provides utilities for streaming plain-text tokens to clients.
"""
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator

from starlette.responses import StreamingResponse as StarletteStreamingResponse

DONE_SENTINEL = "[DONE]"


class StreamEventType(str, Enum):
    """Types of streaming events."""

    TEXT = "message"
    ERROR = "error"
    DONE = "done"


@dataclass
class StreamEvent:
    """A streaming event to send to the client."""

    event_type: StreamEventType
    data: str = ""
    id: str | None = None


def format_sse_event(event: StreamEvent) -> str:
    """
    Format a stream event as an SSE message.

    Text is sent verbatim: every line of the payload becomes its own
    ``data:`` line, so clients rebuild it by joining with newlines.

    Args:
        event: The event to format.

    Returns:
        SSE-formatted string.
    """
    lines = []

    if event.id:
        lines.append(f"id: {event.id}")

    # "message" is the default event name and is left implicit
    if event.event_type != StreamEventType.TEXT:
        lines.append(f"event: {event.event_type.value}")

    for data_line in event.data.split("\n"):
        lines.append(f"data: {data_line}")

    return "\n".join(lines) + "\n\n"


def text_event(fragment: str) -> StreamEvent:
    return StreamEvent(event_type=StreamEventType.TEXT, data=fragment)


def done_event() -> StreamEvent:
    return StreamEvent(event_type=StreamEventType.DONE, data=DONE_SENTINEL)


def error_event(message: str) -> StreamEvent:
    # Keep the message on one line
    return StreamEvent(event_type=StreamEventType.ERROR, data=" ".join(message.split()))


class StreamingResponse(StarletteStreamingResponse):
    """
    Streaming HTTP response for SSE.

    Wraps an async generator of StreamEvents and formats them as SSE.
    """

    def __init__(
        self,
        event_generator: AsyncIterator[StreamEvent],
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ):
        """
        Initialize streaming response.

        Args:
            event_generator: Async generator yielding StreamEvents.
            status_code: HTTP status code.
            headers: Additional HTTP headers.
        """
        self._event_generator = event_generator

        sse_headers = {
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable Nginx buffering
        }
        if headers:
            sse_headers.update(headers)

        super().__init__(
            content=self._stream_events(),
            status_code=status_code,
            headers=sse_headers,
            media_type="text/event-stream",
        )

    async def _stream_events(self) -> AsyncIterator[bytes]:
        """Stream formatted SSE events."""
        async for event in self._event_generator:
            yield format_sse_event(event).encode("utf-8")
