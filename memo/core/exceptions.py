"""
Custom exceptions for the Memo relay.
Maps stream failures onto error codes and HTTP status codes.
"""
from typing import Any


class MemoException(Exception):
    """Base exception for all relay errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serializable error body."""
        body: dict[str, Any] = {
            "message": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            body["details"] = self.details
        return body


# ============== Upstream Exceptions ==============


class UpstreamUnavailableError(MemoException):
    """Raised when the completion endpoint cannot be reached or refuses the request.

    The outbound stream never starts when this is raised.
    """

    status_code = 502
    error_code = "UPSTREAM_UNAVAILABLE"

    def __init__(
        self,
        message: str = "Upstream completion endpoint unavailable",
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.upstream_status = upstream_status


class PrematureTerminationError(MemoException):
    """Raised when the upstream connection ends without the termination sentinel."""

    status_code = 502
    error_code = "PREMATURE_TERMINATION"


# ============== Stream Exceptions ==============


class MalformedFragmentError(MemoException):
    """Raised when a single event line carries no readable content field."""

    status_code = 422
    error_code = "MALFORMED_FRAGMENT"

    def __init__(self, line: str, details: dict[str, Any] | None = None):
        super().__init__(f"Malformed event line: {line[:80]}", details)
        self.line = line


class DownstreamClosedError(MemoException):
    """Raised when the client disconnects before the relay finished."""

    status_code = 499
    error_code = "DOWNSTREAM_CLOSED"

    def __init__(self, message: str = "Client closed the stream", details: dict[str, Any] | None = None):
        super().__init__(message, details)


# ============== Validation Exceptions ==============


class ValidationError(MemoException):
    """Raised when request validation fails."""

    status_code = 422
    error_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.field = field
