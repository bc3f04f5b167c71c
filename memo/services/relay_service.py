"""
Relay between the completion endpoint and the extension.

Builds the upstream request for each mode, opens it, and re-emits the
extracted text deltas as a client-facing event stream, one event per
fragment, in arrival order.
"""
import asyncio
import time
from typing import AsyncIterator, Awaitable, Callable

from memo.core import prompts
from memo.core.config import Settings
from memo.core.exceptions import DownstreamClosedError, PrematureTerminationError
from memo.core.logging import metrics, preview, stream_logger
from memo.core.streaming import StreamEvent, done_event, error_event, text_event
from memo.providers.llm import BaseLLMProvider, LLMMessage, StreamRequest, UpstreamStream
from memo.providers.llm.sse import extract_delta, is_sentinel

DisconnectProbe = Callable[[], Awaitable[bool]]


class RelayService:
    """Service for opening and relaying completion streams."""

    def __init__(self, provider: BaseLLMProvider, settings: Settings):
        self.provider = provider
        self.settings = settings

    def build_analysis_request(self, text: str) -> StreamRequest:
        return StreamRequest(
            system_prompt=prompts.SYSTEM_ANALYZER.render(),
            messages=(LLMMessage(role="user", content=prompts.USER_ANALYZER.render(text=text)),),
            model=self.settings.openai_model,
            temperature=self.settings.openai_temperature,
        )

    def build_chat_request(self, context: str, message: str) -> StreamRequest:
        return StreamRequest(
            system_prompt=prompts.SYSTEM_CHAT.render(context=context),
            messages=(LLMMessage(role="user", content=message),),
            model=self.settings.openai_model,
            temperature=self.settings.openai_temperature,
        )

    async def open(self, request: StreamRequest, tag: str) -> UpstreamStream:
        """
        Open the upstream stream for one client call.

        Raises:
            UpstreamUnavailableError: Before anything was sent to the client.
        """
        stream_logger.log_stream_start(tag, request.model)
        metrics.increment("streams_started")
        try:
            return await self.provider.open_stream(request)
        except Exception as e:
            stream_logger.log_stream_error(tag, str(e))
            metrics.increment("streams_failed", labels={"reason": type(e).__name__})
            raise

    async def relay(
        self,
        upstream: UpstreamStream,
        tag: str,
        is_disconnected: DisconnectProbe | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Re-emit upstream deltas as client events.

        Pulls the next upstream line only after the previous event was
        consumed. Empty fragments are dropped. A ``done`` event is sent only
        when the upstream sentinel arrived; a truncated upstream just ends
        the stream. The upstream response is closed on every exit path,
        including client disconnects and task cancellation.
        """
        started = time.perf_counter()
        fragments = 0
        completed = False
        try:
            async for line in upstream.iter_lines():
                if is_sentinel(line):
                    completed = True
                    break
                fragment = extract_delta(line)
                if not fragment:
                    continue
                if is_disconnected is not None and await is_disconnected():
                    raise DownstreamClosedError()
                fragments += 1
                yield text_event(fragment)

            if completed:
                duration_ms = round((time.perf_counter() - started) * 1000, 2)
                stream_logger.log_stream_end(tag, fragments, duration_ms)
                metrics.increment("streams_completed")
                metrics.record_histogram("stream_duration_ms", duration_ms)
                yield done_event()
            else:
                stream_logger.log_stream_truncated(tag, fragments, "upstream closed without sentinel")
                metrics.increment("streams_truncated")
        except PrematureTerminationError as e:
            stream_logger.log_stream_truncated(tag, fragments, e.message)
            metrics.increment("streams_truncated")
        except DownstreamClosedError:
            stream_logger.log_stream_cancelled(tag, fragments)
            metrics.increment("streams_cancelled")
        except asyncio.CancelledError:
            stream_logger.log_stream_cancelled(tag, fragments)
            metrics.increment("streams_cancelled")
            raise
        except Exception as e:
            stream_logger.log_stream_error(tag, str(e), exc_info=True)
            metrics.increment("streams_failed", labels={"reason": type(e).__name__})
            yield error_event("AI stream failed")
        finally:
            metrics.increment("fragments_relayed", fragments)
            await upstream.aclose()

    async def stream_analysis(
        self,
        text: str,
        is_disconnected: DisconnectProbe | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Open and relay an analysis stream in one call."""
        tag = f"Analysis: {preview(text)}"
        upstream = await self.open(self.build_analysis_request(text), tag)
        return self.relay(upstream, tag, is_disconnected)

    async def stream_chat(
        self,
        context: str,
        message: str,
        is_disconnected: DisconnectProbe | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Open and relay a follow-up chat stream in one call."""
        tag = f"Chat Query: {preview(message)}"
        upstream = await self.open(self.build_chat_request(context, message), tag)
        return self.relay(upstream, tag, is_disconnected)
