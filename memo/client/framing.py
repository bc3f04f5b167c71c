"""
Client-side reassembly of the relay's text/event-stream.

The network hands over bytes in arbitrary chunks: a line, or a multi-byte
character, may be split anywhere. ``FrameReassembler`` turns those chunks
into whole lines and ``EventAssembler`` groups lines into events.
"""
import codecs
from dataclasses import dataclass
from typing import AsyncIterator

from memo.core.streaming import StreamEventType

DATA_PREFIX = "data:"


@dataclass(frozen=True)
class ServerEvent:
    """One dispatched event: its name and its joined data lines."""

    event: str
    data: str


class FrameReassembler:
    """Incremental decoder plus carry-over buffer for the last partial line."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._carry = ""

    @property
    def pending(self) -> str:
        """Text received after the last line terminator."""
        return self._carry

    def feed(self, chunk: bytes) -> list[str]:
        """Decode ``chunk`` and return every line it completed.

        Accepts ``\\n`` and ``\\r\\n`` terminators; the terminator is not part
        of the returned line.
        """
        self._carry += self._decoder.decode(chunk)
        *lines, self._carry = self._carry.split("\n")
        return [line.removesuffix("\r") for line in lines]

    def close(self) -> list[str]:
        """Flush at end of stream; an unterminated ``data:`` line still counts."""
        tail = (self._carry + self._decoder.decode(b"", final=True)).removesuffix("\r")
        self._carry = ""
        if tail.startswith(DATA_PREFIX):
            return [tail]
        return []


def parse_field(line: str) -> tuple[str, str]:
    """Split a line into field name and value, dropping one space after the colon."""
    name, sep, value = line.partition(":")
    if not sep:
        return line, ""
    return name, value.removeprefix(" ")


def data_payload(line: str) -> str | None:
    """The payload of a ``data:`` line, or None for any other line."""
    if not line.startswith(DATA_PREFIX):
        return None
    return parse_field(line)[1]


class EventAssembler:
    """Collects field lines until a blank line dispatches the event."""

    def __init__(self):
        self._event = ""
        self._data: list[str] = []

    def push(self, line: str) -> ServerEvent | None:
        if line == "":
            return self._dispatch()
        if line.startswith(":"):
            return None  # comment / keep-alive

        name, value = parse_field(line)
        if name == "data":
            self._data.append(value)
        elif name == "event":
            self._event = value
        return None

    def flush(self) -> ServerEvent | None:
        """Dispatch whatever is pending when the stream ends without a blank line."""
        return self._dispatch()

    def _dispatch(self) -> ServerEvent | None:
        event, data = self._event, self._data
        self._event, self._data = "", []
        if not data:
            return None
        return ServerEvent(event=event or StreamEventType.TEXT.value, data="\n".join(data))


async def iter_events(chunks: AsyncIterator[bytes]) -> AsyncIterator[ServerEvent]:
    """Turn a byte stream into events, tolerant of any chunk boundaries."""
    reassembler = FrameReassembler()
    assembler = EventAssembler()

    async for chunk in chunks:
        for line in reassembler.feed(chunk):
            event = assembler.push(line)
            if event is not None:
                yield event

    for line in reassembler.close():
        assembler.push(line)
    event = assembler.flush()
    if event is not None:
        yield event
