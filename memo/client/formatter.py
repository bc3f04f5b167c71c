"""Display markup for free-form answers."""
import re
from html import escape

_BOLD = re.compile(r"\*\*(.+?)\*\*")
_CODE = re.compile(r"`([^`]+?)`")

PARAGRAPH_BREAK = '<br><div class="memo-spacer"></div>'
LINE_BREAK = "<br>"


def format_plain_text(text: str) -> str:
    """
    Convert accumulated answer text into safe display markup.

    ``&``, ``<`` and ``>`` are escaped before any markup is introduced, so
    model output can never inject tags. Then, in order: ``**bold**``,
    ``inline code``, blank-line paragraph breaks, single line breaks.
    """
    html = escape(text, quote=False)
    html = _BOLD.sub(r"<strong>\1</strong>", html)
    html = _CODE.sub(r"<code>\1</code>", html)
    html = html.replace("\n\n", PARAGRAPH_BREAK)
    return html.replace("\n", LINE_BREAK)
