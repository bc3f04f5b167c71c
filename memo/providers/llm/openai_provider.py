"""
OpenAI-compatible streaming provider.

Talks to any endpoint implementing the Chat Completions API with
``stream=true`` and hands back the raw event lines untouched.
"""
from typing import AsyncIterator

import httpx

from memo.client.framing import FrameReassembler
from memo.core.exceptions import PrematureTerminationError, UpstreamUnavailableError
from memo.core.logging import get_logger
from memo.providers.llm.base import BaseLLMProvider, StreamRequest, UpstreamStream

logger = get_logger("upstream")


class HTTPUpstreamStream(UpstreamStream):
    """Line reader over a streamed httpx response."""

    def __init__(self, response: httpx.Response):
        self.response = response

    async def iter_lines(self) -> AsyncIterator[str]:
        """
        Yield raw lines as soon as the transport delivers them.

        Lines break on ``\\n`` only. JSON strings may carry raw U+2028 and
        other separators that ``aiter_lines`` would also split on.

        Raises:
            PrematureTerminationError: If the connection drops or stalls past
                the idle timeout before the body is complete.
        """
        reassembler = FrameReassembler()
        try:
            async for chunk in self.response.aiter_bytes():
                for line in reassembler.feed(chunk):
                    yield line
            for line in reassembler.close():
                yield line
        except httpx.RequestError as e:
            raise PrematureTerminationError(
                f"Upstream stream interrupted: {type(e).__name__}",
                details={"error": str(e)},
            ) from e
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if not self.response.is_closed:
            await self.response.aclose()


class OpenAIProvider(BaseLLMProvider):
    """Streaming Chat Completions over plain HTTP."""

    def __init__(
        self,
        api_key: str,
        model_name: str,
        base_url: str = "https://api.openai.com/v1",
        connect_timeout: float = 10.0,
        idle_timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_key, model_name, base_url.rstrip("/"))
        headers = {"Accept": "text/event-stream"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        # The read timeout applies to each read, so it bounds idle gaps
        # rather than the whole response.
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(idle_timeout, connect=connect_timeout),
            transport=transport,
        )

    async def open_stream(self, request: StreamRequest) -> UpstreamStream:
        """
        Send the completion request and return once response headers arrive.

        Raises:
            UpstreamUnavailableError: On connection failure or a non-2xx status.
        """
        http_request = self.client.build_request(
            "POST",
            "/chat/completions",
            json=request.to_payload(),
        )
        try:
            response = await self.client.send(http_request, stream=True)
        except httpx.RequestError as e:
            raise UpstreamUnavailableError(
                f"Cannot reach completion endpoint: {type(e).__name__}",
                details={"error": str(e)},
            ) from e

        if response.status_code >= 400:
            body = await response.aread()
            await response.aclose()
            raise UpstreamUnavailableError(
                f"Completion endpoint returned {response.status_code}",
                upstream_status=response.status_code,
                details={"body": body.decode("utf-8", errors="replace")[:200]},
            )

        logger.debug(
            "Upstream stream opened",
            extra={"extra_fields": {"event": "upstream_opened", "model": request.model}},
        )
        return HTTPUpstreamStream(response)

    async def aclose(self) -> None:
        await self.client.aclose()
