"""
Incremental parser for the marker-tagged analysis stream.

The model prefixes each section of its answer with a literal tag
(``[grammar]``, ``[phrases]``, ``[tip]``). Every new fragment is appended to
the buffer and the whole buffer is rescanned, so the current value of each
field is always a pure function of the text received so far.
"""
import re
from dataclasses import dataclass
from typing import Iterable

from memo.core.prompts import GRAMMAR_MARKER, PHRASES_MARKER, TIP_MARKER

_PHRASE_SEPARATORS = re.compile(r"[,，]")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    marker: str


ANALYSIS_FIELDS = (
    FieldSpec("grammar", GRAMMAR_MARKER),
    FieldSpec("phrases", PHRASES_MARKER),
    FieldSpec("tip", TIP_MARKER),
)


def split_phrases(value: str) -> list[str]:
    """Split the phrase field on ASCII and full-width commas."""
    return [tag.strip() for tag in _PHRASE_SEPARATORS.split(value) if tag.strip()]


def _partial_marker_length(text: str, markers: Iterable[str]) -> int:
    """Length of the longest suffix of ``text`` that is a proper prefix of a marker."""
    markers = list(markers)
    longest = max((len(m) for m in markers), default=0)
    for size in range(min(longest - 1, len(text)), 0, -1):
        suffix = text[-size:]
        if any(m.startswith(suffix) for m in markers):
            return size
    return 0


def extract_field(
    buffer: str,
    marker: str,
    next_marker: str | None = None,
    holdback: Iterable[str] = (),
) -> str | None:
    """
    Current value of the field introduced by ``marker``.

    The value runs to the first ``next_marker`` after it, or to the end of the
    buffer. When it runs to the end, a trailing fragment of any ``holdback``
    marker (say ``[phr``) is left out until the rest of it arrives.

    Returns:
        The trimmed value, or None while ``marker`` has not appeared.
    """
    start = buffer.find(marker)
    if start == -1:
        return None
    start += len(marker)

    end = buffer.find(next_marker, start) if next_marker else -1
    if end == -1:
        end = len(buffer) - _partial_marker_length(buffer[start:], holdback)
    return buffer[start:end].strip()


class IncrementalFieldParser:
    """
    Rebuilds an ordered set of fields from a growing text buffer.

    A field only changes when its recomputed value is non-empty, so a marker
    that has just arrived never blanks out what was already shown.
    """

    def __init__(self, fields: Iterable[FieldSpec] = ANALYSIS_FIELDS):
        self.fields = tuple(fields)
        self._markers = [spec.marker for spec in self.fields]
        self._buffer = ""
        self._values: dict[str, str | None] = {spec.name: None for spec in self.fields}
        self._finished = False

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def finished(self) -> bool:
        return self._finished

    def snapshot(self) -> dict[str, str | None]:
        """Best-known value per field; None while a field is still unknown."""
        return dict(self._values)

    def feed(self, fragment: str) -> dict[str, str]:
        """
        Append one fragment and rescan.

        Returns:
            The fields whose displayed value changed, in declared order.
        """
        if self._finished:
            raise RuntimeError("parser already finished")
        self._buffer += fragment
        return self._rescan(holdback=True)

    def finish(self) -> dict[str, str]:
        """Final rescan without holdback; values are frozen afterwards."""
        if self._finished:
            return {}
        changed = self._rescan(holdback=False)
        self._finished = True
        self._buffer = ""
        return changed

    def _rescan(self, holdback: bool) -> dict[str, str]:
        changed: dict[str, str] = {}
        for index, spec in enumerate(self.fields):
            next_marker = self.fields[index + 1].marker if index + 1 < len(self.fields) else None
            value = extract_field(
                self._buffer,
                spec.marker,
                next_marker,
                holdback=self._markers if holdback else (),
            )
            if value and value != self._values[spec.name]:
                self._values[spec.name] = value
                changed[spec.name] = value
        return changed
