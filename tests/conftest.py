"""
Pytest configuration and shared fixtures for relay tests.
"""
import json
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from memo.core.config import Settings
from memo.core.logging import metrics
from memo.main import create_app
from memo.providers.llm import OpenAIProvider, UpstreamStream


def completion_line(content: str | None, role: str | None = None) -> str:
    """One upstream chat-completion chunk line as the API sends it."""
    delta: dict[str, Any] = {}
    if role:
        delta["role"] = role
    if content is not None:
        delta["content"] = content
    chunk = {
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": None}],
    }
    return "data: " + json.dumps(chunk, ensure_ascii=False)


def upstream_body(fragments: list[str], done: bool = True) -> bytes:
    """Full upstream event-stream body for the given fragments."""
    lines = [completion_line("", role="assistant")]
    lines.extend(completion_line(f) for f in fragments)
    if done:
        lines.append("data: [DONE]")
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


class ChunkedStream(httpx.AsyncByteStream):
    """Response body delivered in fixed pieces, optionally failing afterwards."""

    def __init__(self, chunks: list[bytes], error: Exception | None = None):
        self.chunks = chunks
        self.error = error
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


class FakeUpstream(UpstreamStream):
    """In-memory upstream yielding prepared raw lines."""

    def __init__(self, lines: list[str], error: Exception | None = None):
        self.lines = lines
        self.error = error
        self.closed = False
        self.consumed = 0

    async def iter_lines(self) -> AsyncIterator[str]:
        for line in self.lines:
            self.consumed += 1
            yield line
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        openai_api_key="sk-test-key-123",
        openai_base_url="https://llm.test/v1",
        openai_model="gpt-test",
        openai_temperature=0.5,
    )


@pytest.fixture
def make_provider(settings: Settings) -> Callable[..., OpenAIProvider]:
    """Factory for a provider whose HTTP traffic goes to a handler function."""
    def _make_provider(handler: Callable[[httpx.Request], httpx.Response]) -> OpenAIProvider:
        return OpenAIProvider(
            api_key=settings.openai_api_key,
            model_name=settings.openai_model,
            base_url=settings.openai_base_url,
            transport=httpx.MockTransport(handler),
        )
    return _make_provider


@pytest.fixture
def make_app(settings: Settings, make_provider) -> Callable[..., FastAPI]:
    def _make_app(handler: Callable[[httpx.Request], httpx.Response]) -> FastAPI:
        return create_app(settings, provider=make_provider(handler))
    return _make_app


@pytest_asyncio.fixture
async def relay_client(make_app) -> AsyncGenerator[Callable[..., AsyncClient], None]:
    """Factory for in-process HTTP clients against the relay app."""
    clients: list[AsyncClient] = []

    def _client(handler: Callable[[httpx.Request], httpx.Response]) -> AsyncClient:
        client = AsyncClient(
            transport=ASGITransport(app=make_app(handler)),
            base_url="http://test",
        )
        clients.append(client)
        return client

    yield _client

    for client in clients:
        await client.aclose()


class RecordingRenderer:
    """Display double that records every call in order."""

    def __init__(self):
        self.calls: list[tuple[str, Any]] = []
        self.fields: dict[str, Any] = {}
        self.markup: str | None = None
        self.errors: list[str] = []

    def render_field(self, name: str, value: str) -> None:
        self.calls.append((name, value))
        self.fields[name] = value

    def render_phrases(self, tags: list[str]) -> None:
        self.calls.append(("phrases", tags))
        self.fields["phrases"] = tags

    def render_markup(self, html: str) -> None:
        self.calls.append(("markup", html))
        self.markup = html

    def show_error(self, message: str) -> None:
        self.calls.append(("error", message))
        self.errors.append(message)


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()
