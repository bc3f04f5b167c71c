"""
Per-request client sessions for the relay's two stream types.

Every call gets its own session object holding its own buffer, so two
selections analysed at the same time (two tabs, say) never share state.
Failures end up on the renderer as a short message; they are never raised
to the caller.
"""
import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, AsyncIterator, Protocol

import httpx

from memo.client.fields import ANALYSIS_FIELDS, IncrementalFieldParser, split_phrases
from memo.client.formatter import format_plain_text
from memo.client.framing import ServerEvent, iter_events
from memo.client.transcript import ChatTranscript, ChatTurn
from memo.core.logging import get_logger
from memo.core.streaming import StreamEventType

logger = get_logger("client")

FAILURE_PREFIX = "AI 加载失败: "


class StreamStatus(str, Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    TRUNCATED = "truncated"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = {
    StreamStatus.COMPLETED,
    StreamStatus.TRUNCATED,
    StreamStatus.FAILED,
    StreamStatus.CANCELLED,
}


class FieldRenderer(Protocol):
    """Display surface for a structured analysis."""

    def render_field(self, name: str, value: str) -> None: ...

    def render_phrases(self, tags: list[str]) -> None: ...

    def show_error(self, message: str) -> None: ...


class ChatRenderer(Protocol):
    """Display surface for a free-form answer."""

    def render_markup(self, html: str) -> None: ...

    def show_error(self, message: str) -> None: ...


def is_sentence(text: str) -> bool:
    """Multi-word selections get the structured analysis."""
    return len(text.split()) > 1


class StreamSession(ABC):
    """Lifecycle shared by both request types."""

    path: str
    renderer: FieldRenderer | ChatRenderer

    def __init__(self):
        self.status = StreamStatus.PENDING
        self.error: str | None = None

    @property
    def done(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @abstractmethod
    def request_body(self) -> dict[str, Any]:
        """JSON body sent to the relay."""

    @abstractmethod
    def on_fragment(self, fragment: str) -> None:
        """Handle one text token, strictly in arrival order."""

    def on_start(self) -> None:
        pass

    def on_end(self) -> None:
        pass

    def start(self) -> None:
        self.status = StreamStatus.STREAMING
        self.on_start()

    def end(self, status: StreamStatus) -> None:
        if self.done:
            return
        self.status = status
        self.on_end()

    def fail(self, message: str) -> None:
        if self.done:
            return
        self.error = message
        self.status = StreamStatus.FAILED
        self.renderer.show_error(f"{FAILURE_PREFIX}{message}")
        self.on_end()

    async def consume(self, events: AsyncIterator[ServerEvent]) -> StreamStatus:
        """Apply relay events until done, error, or the end of the body."""
        self.start()
        async for event in events:
            if event.event == StreamEventType.DONE.value:
                self.end(StreamStatus.COMPLETED)
                return self.status
            if event.event == StreamEventType.ERROR.value:
                self.fail(event.data)
                return self.status
            self.on_fragment(event.data)

        # No done event: keep whatever arrived as the final result
        self.end(StreamStatus.TRUNCATED)
        return self.status


class AnalysisSession(StreamSession):
    """Structured analysis of one selected sentence."""

    path = "/api/analyze"

    def __init__(self, text: str, renderer: FieldRenderer):
        super().__init__()
        self.text = text
        self.renderer = renderer
        self.parser = IncrementalFieldParser(ANALYSIS_FIELDS)

    @property
    def fields(self) -> dict[str, str | None]:
        return self.parser.snapshot()

    @property
    def phrases(self) -> list[str]:
        return split_phrases(self.fields["phrases"] or "")

    def request_body(self) -> dict[str, Any]:
        return {"text": self.text}

    def on_fragment(self, fragment: str) -> None:
        self._render(self.parser.feed(fragment))

    def on_end(self) -> None:
        self._render(self.parser.finish())

    def _render(self, changed: dict[str, str]) -> None:
        for name, value in changed.items():
            if name == "phrases":
                self.renderer.render_phrases(split_phrases(value))
            else:
                self.renderer.render_field(name, value)


class ChatSession(StreamSession):
    """One follow-up question and its streamed answer."""

    path = "/api/chat"

    def __init__(
        self,
        context: str,
        message: str,
        renderer: ChatRenderer,
        transcript: ChatTranscript | None = None,
    ):
        super().__init__()
        self.context = context
        self.message = message
        self.renderer = renderer
        self.transcript = transcript if transcript is not None else ChatTranscript()
        self.turn: ChatTurn | None = None

    @property
    def answer(self) -> str:
        return self.turn.text if self.turn else ""

    def request_body(self) -> dict[str, Any]:
        return {"context": self.context, "message": self.message}

    def on_start(self) -> None:
        self.transcript.add_user(self.message)
        self.turn = self.transcript.begin_assistant()

    def on_fragment(self, fragment: str) -> None:
        self.turn.append(fragment)
        self.renderer.render_markup(format_plain_text(self.turn.text))

    def on_end(self) -> None:
        if self.turn is not None:
            self.turn.freeze()


def _error_message(response: httpx.Response) -> str:
    fallback = f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"] or fallback
    return fallback


class MemoClient:
    """
    Async client for the relay.

    Cancelling the task awaiting ``analyze``/``chat`` closes the HTTP
    response, which makes the relay drop its upstream connection too.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> "MemoClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def analyze(self, text: str, renderer: FieldRenderer) -> AnalysisSession:
        """Stream a structured analysis of ``text`` into ``renderer``."""
        session = AnalysisSession(text, renderer)
        await self.run(session)
        return session

    async def chat(
        self,
        context: str,
        message: str,
        renderer: ChatRenderer,
        transcript: ChatTranscript | None = None,
    ) -> ChatSession:
        """Stream a free-form answer about ``context`` into ``renderer``."""
        session = ChatSession(context, message, renderer, transcript)
        await self.run(session)
        return session

    async def run(self, session: StreamSession) -> StreamStatus:
        try:
            async with self.client.stream("POST", session.path, json=session.request_body()) as response:
                if response.status_code >= 400:
                    await response.aread()
                    session.fail(_error_message(response))
                    return session.status
                await session.consume(iter_events(response.aiter_bytes()))
        except asyncio.CancelledError:
            session.end(StreamStatus.CANCELLED)
            raise
        except httpx.RequestError as e:
            if session.status is StreamStatus.STREAMING:
                logger.warning(f"Stream interrupted: {type(e).__name__}")
                session.end(StreamStatus.TRUNCATED)
            else:
                session.fail(type(e).__name__)
        return session.status
