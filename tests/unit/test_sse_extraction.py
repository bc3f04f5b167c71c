"""
Unit tests for delta extraction from upstream event lines.
"""
import pytest

from memo.core.exceptions import MalformedFragmentError
from memo.providers.llm.sse import extract_delta, is_sentinel, scan_content, strip_data_prefix


class TestStripDataPrefix:
    """Tests for transport prefix handling."""

    def test_strips_prefix_and_whitespace(self):
        assert strip_data_prefix('data: {"a": 1}  ') == '{"a": 1}'

    def test_line_without_prefix_is_only_trimmed(self):
        assert strip_data_prefix('  {"a": 1}') == '{"a": 1}'


class TestExtractDelta:
    """Tests for extract_delta."""

    def test_plain_content(self):
        line = 'data: {"choices":[{"delta":{"content":"Hello"}}]}'
        assert extract_delta(line) == "Hello"

    def test_content_with_spacing_around_colon(self):
        line = 'data: {"delta": {"content" :  "Hi there"}}'
        assert extract_delta(line) == "Hi there"

    def test_escaped_quotes_are_not_a_terminator(self):
        line = r'data: {"choices":[{"delta":{"content":"He said \"hi\""}}]}'
        assert extract_delta(line) == 'He said "hi"'

    def test_newline_escape(self):
        line = r'data: {"delta":{"content":"line one\nline two"}}'
        assert extract_delta(line) == "line one\nline two"

    def test_escaped_backslash_before_n_is_not_a_newline(self):
        # Source text is a backslash followed by the letter n
        line = r'data: {"delta":{"content":"C:\\new"}}'
        assert extract_delta(line) == "C:\\new"

    def test_escaped_backslash_before_closing_quote(self):
        line = r'data: {"delta":{"content":"ends with \\"},"finish_reason":null}'
        assert extract_delta(line) == "ends with \\"

    def test_other_escapes_are_kept_verbatim(self):
        line = r'data: {"delta":{"content":"tab\there"}}'
        assert extract_delta(line) == "tab\\there"

    def test_unicode_content(self):
        line = 'data: {"delta":{"content":"记住 go→went"}}'
        assert extract_delta(line) == "记住 go→went"

    def test_empty_content_is_a_fragment(self):
        line = 'data: {"choices":[{"delta":{"role":"assistant","content":""}}]}'
        assert extract_delta(line) == ""

    def test_done_sentinel_returns_none(self):
        assert extract_delta("data: [DONE]") is None

    def test_empty_line_returns_none(self):
        assert extract_delta("") is None
        assert extract_delta("data:   ") is None

    def test_missing_content_field_returns_none(self):
        line = 'data: {"choices":[{"delta":{},"finish_reason":"stop"}]}'
        assert extract_delta(line) is None

    def test_null_content_returns_none(self):
        line = 'data: {"choices":[{"delta":{"content":null}}]}'
        assert extract_delta(line) is None

    def test_unterminated_content_returns_none(self):
        assert extract_delta('data: {"delta":{"content":"cut off') is None

    def test_similar_key_is_not_matched(self):
        line = 'data: {"delta":{"reasoning_content":"thinking"}}'
        assert extract_delta(line) is None

    def test_non_json_garbage_returns_none(self):
        assert extract_delta("data: <html>502 Bad Gateway</html>") is None


class TestScanContent:
    """Tests for the raising scanner used by extract_delta."""

    def test_raises_on_missing_field(self):
        with pytest.raises(MalformedFragmentError) as exc_info:
            scan_content('{"delta":{}}')
        assert exc_info.value.error_code == "MALFORMED_FRAGMENT"

    def test_trailing_lone_backslash_is_malformed(self):
        with pytest.raises(MalformedFragmentError):
            scan_content('{"content":"abc\\')


class TestIsSentinel:
    """Tests for termination detection."""

    def test_sentinel_with_prefix(self):
        assert is_sentinel("data: [DONE]")

    def test_sentinel_without_space(self):
        assert is_sentinel("data:[DONE]")

    def test_regular_line_is_not_sentinel(self):
        assert not is_sentinel('data: {"delta":{"content":"[DONE]"}}')
