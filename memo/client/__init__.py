from memo.client.fields import ANALYSIS_FIELDS, FieldSpec, IncrementalFieldParser, split_phrases
from memo.client.formatter import format_plain_text
from memo.client.framing import EventAssembler, FrameReassembler, ServerEvent, iter_events
from memo.client.session import (
    AnalysisSession,
    ChatSession,
    MemoClient,
    StreamStatus,
    is_sentence,
)
from memo.client.transcript import ChatTranscript, ChatTurn

__all__ = [
    "ANALYSIS_FIELDS",
    "FieldSpec",
    "IncrementalFieldParser",
    "split_phrases",
    "format_plain_text",
    "EventAssembler",
    "FrameReassembler",
    "ServerEvent",
    "iter_events",
    "AnalysisSession",
    "ChatSession",
    "MemoClient",
    "StreamStatus",
    "is_sentence",
    "ChatTranscript",
    "ChatTurn",
]
