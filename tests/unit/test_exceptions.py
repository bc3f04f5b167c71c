"""
Unit tests for relay exceptions.
"""
from memo.core.exceptions import (
    DownstreamClosedError,
    MalformedFragmentError,
    MemoException,
    PrematureTerminationError,
    UpstreamUnavailableError,
    ValidationError,
)


class TestMemoException:
    """Tests for the base exception."""

    def test_to_dict(self):
        """Test serialization without details."""
        exc = MemoException("Something broke")
        assert exc.to_dict() == {"message": "Something broke", "error_code": "INTERNAL_ERROR"}
        assert str(exc) == "Something broke"

    def test_to_dict_with_details(self):
        exc = MemoException("Something broke", details={"stage": "relay"})
        assert exc.to_dict()["details"] == {"stage": "relay"}

    def test_subclass_codes(self):
        """Test that each failure carries its own status and error code."""
        exc = UpstreamUnavailableError()

        assert exc.status_code == 502
        assert exc.to_dict()["error_code"] == "UPSTREAM_UNAVAILABLE"


class TestStreamExceptions:
    """Tests for the stream failure taxonomy."""

    def test_upstream_unavailable_defaults(self):
        exc = UpstreamUnavailableError(upstream_status=401)

        assert exc.message == "Upstream completion endpoint unavailable"
        assert exc.upstream_status == 401
        assert exc.status_code == 502

    def test_premature_termination(self):
        exc = PrematureTerminationError("peer closed")

        assert exc.error_code == "PREMATURE_TERMINATION"
        assert isinstance(exc, MemoException)

    def test_malformed_fragment_keeps_line(self):
        line = "data: " + "x" * 200
        exc = MalformedFragmentError(line)

        assert exc.line == line
        assert len(exc.message) < len(line)
        assert exc.status_code == 422

    def test_downstream_closed(self):
        exc = DownstreamClosedError()

        assert exc.status_code == 499
        assert exc.message == "Client closed the stream"

    def test_validation_error_field(self):
        exc = ValidationError("text must not be blank", field="text")

        assert exc.field == "text"
        assert exc.to_dict()["error_code"] == "VALIDATION_ERROR"
