"""
Unit tests for free-form answer formatting.
"""
from memo.client.formatter import LINE_BREAK, PARAGRAPH_BREAK, format_plain_text


class TestFormatPlainText:
    """Tests for format_plain_text."""

    def test_escapes_before_markup(self):
        html = format_plain_text("He said <b>hi</b>\n\n**bold**")

        assert html == (
            'He said &lt;b&gt;hi&lt;/b&gt;<br><div class="memo-spacer"></div><strong>bold</strong>'
        )
        assert "<b>" not in html

    def test_ampersand(self):
        assert format_plain_text("salt & pepper") == "salt &amp; pepper"

    def test_quotes_left_alone(self):
        assert format_plain_text('say "hi"') == 'say "hi"'

    def test_inline_code_is_escaped_inside(self):
        assert format_plain_text("use `a < b`") == "use <code>a &lt; b</code>"

    def test_single_newline(self):
        assert format_plain_text("one\ntwo") == f"one{LINE_BREAK}two"

    def test_paragraph_break(self):
        assert format_plain_text("one\n\ntwo") == f"one{PARAGRAPH_BREAK}two"

    def test_unclosed_bold_stays_literal(self):
        """A bold span still streaming in is shown as typed until it closes."""
        assert format_plain_text("**bo") == "**bo"
        assert format_plain_text("**bold**") == "<strong>bold</strong>"

    def test_injected_markup_never_survives(self):
        html = format_plain_text("**<script>alert(1)</script>**")

        assert html == "<strong>&lt;script&gt;alert(1)&lt;/script&gt;</strong>"
