"""
Delta extraction for chat-completion event streams.

Each upstream ``data:`` line carries a JSON chunk with a nested ``content``
value. Only that value is needed, so it is located with a tolerant scanner
instead of a full JSON parse: payloads of a slightly different shape still
yield their text, and a line without a readable value is skipped.
"""
import re

from memo.core.exceptions import MalformedFragmentError
from memo.core.logging import get_logger
from memo.core.streaming import DONE_SENTINEL

logger = get_logger("sse")

DATA_PREFIX = "data:"

_CONTENT_KEY = re.compile(r'"content"\s*:\s*"')

# Escapes resolved inside the content value; anything else is kept verbatim.
_ESCAPES = {
    "n": "\n",
    '"': '"',
    "\\": "\\",
}


def strip_data_prefix(line: str) -> str:
    """Remove transport framing and surrounding whitespace."""
    return line.removeprefix(DATA_PREFIX).strip()


def is_sentinel(line: str) -> bool:
    """True for the upstream termination line."""
    return strip_data_prefix(line) == DONE_SENTINEL


def scan_content(data: str) -> str:
    """
    Return the unescaped ``content`` string of one payload.

    Walks the quoted value left to right in a single pass so that ``\\\\n``
    stays a backslash followed by ``n`` and an escaped quote never ends the
    value.

    Raises:
        MalformedFragmentError: If no complete content string is present.
    """
    match = _CONTENT_KEY.search(data)
    if match is None:
        raise MalformedFragmentError(data)

    out: list[str] = []
    i = match.end()
    end = len(data)
    while i < end:
        ch = data[i]
        if ch == '"':
            return "".join(out)
        if ch == "\\" and i + 1 < end:
            nxt = data[i + 1]
            out.append(_ESCAPES.get(nxt, ch + nxt))
            i += 2
            continue
        out.append(ch)
        i += 1

    # Unterminated string
    raise MalformedFragmentError(data)


def extract_delta(line: str) -> str | None:
    """
    Extract the text delta carried by one raw event line.

    Returns:
        The fragment (possibly ``""``), or None for the sentinel, blank
        lines and lines without a readable content value.
    """
    data = strip_data_prefix(line)
    if not data or data == DONE_SENTINEL:
        return None

    try:
        return scan_content(data)
    except MalformedFragmentError as e:
        logger.debug(
            "Skipping event line without content",
            extra={"extra_fields": {"event": "malformed_fragment", "line": e.line[:200]}},
        )
        return None
