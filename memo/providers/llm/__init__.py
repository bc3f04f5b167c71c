from memo.providers.llm.base import BaseLLMProvider, LLMMessage, StreamRequest, UpstreamStream
from memo.providers.llm.openai_provider import HTTPUpstreamStream, OpenAIProvider
from memo.providers.llm.sse import extract_delta, is_sentinel

__all__ = [
    "BaseLLMProvider",
    "LLMMessage",
    "StreamRequest",
    "UpstreamStream",
    "HTTPUpstreamStream",
    "OpenAIProvider",
    "extract_delta",
    "is_sentinel",
]
