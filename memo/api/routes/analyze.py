"""
Streaming analysis and follow-up chat endpoints.

Both answer with a text/event-stream of plain-text tokens. Upstream setup
failures are reported as a JSON error before any stream starts.
"""
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from memo.core.exceptions import ValidationError
from memo.core.streaming import StreamingResponse
from memo.services import RelayService

router = APIRouter()


class AnalyzeRequest(BaseModel):
    """Request body for sentence analysis."""
    text: str = Field(min_length=1)


class ChatRequest(BaseModel):
    """Request body for a follow-up question about a text."""
    context: str = Field(min_length=1)
    message: str = Field(min_length=1)


def get_relay_service(request: Request) -> RelayService:
    return request.app.state.relay_service


def _require_text(value: str, field: str, max_length: int) -> str:
    value = value.strip()
    if not value:
        raise ValidationError(f"{field} must not be blank", field=field)
    if len(value) >= max_length:
        raise ValidationError(
            f"{field} must be shorter than {max_length} characters",
            field=field,
            details={"length": len(value)},
        )
    return value


@router.post("/analyze")
async def analyze(
    body: AnalyzeRequest,
    request: Request,
    service: RelayService = Depends(get_relay_service),
) -> StreamingResponse:
    """
    Stream a marker-tagged analysis of one sentence.

    Request body:
    {
        "text": "He went home."
    }

    Response: SSE stream of text tokens
    - data: <token>
    - event: done / data: [DONE]
    - event: error / data: <message>
    """
    text = _require_text(body.text, "text", service.settings.max_text_length)
    events = await service.stream_analysis(text, is_disconnected=request.is_disconnected)
    return StreamingResponse(events)


@router.post("/chat")
async def chat(
    body: ChatRequest,
    request: Request,
    service: RelayService = Depends(get_relay_service),
) -> StreamingResponse:
    """
    Stream a free-form answer to a question about ``context``.

    Request body:
    {
        "context": "He went home.",
        "message": "Why not 'goed'?"
    }
    """
    context = _require_text(body.context, "context", service.settings.max_text_length)
    message = _require_text(body.message, "message", service.settings.max_text_length)
    events = await service.stream_chat(context, message, is_disconnected=request.is_disconnected)
    return StreamingResponse(events)
