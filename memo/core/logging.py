"""
Structured logging and metrics for the Memo relay.

Records are JSON in production and plain text in development. Every record
written while a request is being served carries that request's ID, and every
relayed stream leaves one start record plus one outcome record.
"""

import json
import logging
import sys
import threading
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import IO, Any
from uuid import uuid4

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

PREVIEW_LENGTH = 30
LOGGER_NAMESPACE = "memo"
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LogConfig:
    """Level and output format of the ``memo`` logger tree."""

    level: str = "INFO"
    format: str = "json"  # "json" or "text"
    include_timestamp: bool = True

    def __post_init__(self):
        level = self.level.upper()
        if level not in _LEVELS:
            raise ValueError(f"Invalid log level: {self.level}. Must be one of {', '.join(_LEVELS)}")
        self.level = level


class JSONFormatter(logging.Formatter):
    """One JSON object per record; structured fields come from ``extra_fields``."""

    def __init__(self, include_timestamp: bool = True, service_name: str = "memo-relay"):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }
        if self.include_timestamp:
            entry["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()

        request_id = _request_id.get()
        if request_id:
            entry["request_id"] = request_id

        entry.update(getattr(record, "extra_fields", {}))

        if record.exc_info:
            exc_type, exc, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc) if exc else "",
                "stacktrace": self.formatException(record.exc_info),
            }

        # Chinese model output stays readable in the log
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable lines, prefixed with the short request ID when there is one."""

    def __init__(self, include_timestamp: bool = True):
        fmt = "%(levelname)s - %(name)s - %(message)s"
        if include_timestamp:
            fmt = "%(asctime)s - " + fmt
        super().__init__(fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        request_id = _request_id.get()
        if not request_id:
            return super().formatMessage(record)
        # Other handlers share the record, so the prefix goes on a copy
        tagged = logging.makeLogRecord(record.__dict__)
        tagged.message = f"[{request_id[:8]}] {record.message}"
        return super().formatMessage(tagged)


_console_handler: logging.Handler | None = None


def setup_logging(
    config: LogConfig,
    stream: IO[str] | None = None,
    service_name: str = "memo-relay",
) -> None:
    """(Re)configure the single console handler of the ``memo`` logger tree."""
    global _console_handler

    root = logging.getLogger(LOGGER_NAMESPACE)
    if _console_handler:
        root.removeHandler(_console_handler)

    if config.format == "json":
        formatter: logging.Formatter = JSONFormatter(config.include_timestamp, service_name)
    else:
        formatter = TextFormatter(config.include_timestamp)

    _console_handler = logging.StreamHandler(stream or sys.stdout)
    _console_handler.setFormatter(formatter)
    root.addHandler(_console_handler)
    root.setLevel(config.level)
    root.propagate = False


def get_logger(name: str = "") -> logging.Logger:
    """``memo.<name>``, or the ``memo`` root logger when no name is given."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}" if name else LOGGER_NAMESPACE)


def preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    """Shorten request text for diagnostics."""
    return f"{text[:length]}..."


class StreamLogger:
    """Lifecycle records for relayed completion streams.

    Handler failures are absorbed by ``logging.Handler.handleError``, so these
    calls never interrupt the stream they describe.
    """

    def __init__(self):
        self.logger = get_logger("relay")

    def _log(self, level: int, message: str, event: str, tag: str, exc_info: bool = False, **fields: Any) -> None:
        self.logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={"extra_fields": {"event": event, "tag": tag, **fields}},
        )

    def log_stream_start(self, tag: str, model: str, **extra: Any) -> None:
        self._log(logging.INFO, f"AI Request Started [{tag}]", "stream_started", tag, model=model, **extra)

    def log_stream_end(self, tag: str, fragments: int, duration_ms: float, **extra: Any) -> None:
        """Stream reached the termination sentinel."""
        self._log(
            logging.INFO,
            f"AI Request Completed [{tag}] with {fragments} fragments",
            "stream_completed",
            tag,
            fragments=fragments,
            duration_ms=duration_ms,
            **extra,
        )

    def log_stream_truncated(self, tag: str, fragments: int, reason: str, **extra: Any) -> None:
        """Upstream closed without a sentinel."""
        self._log(
            logging.WARNING,
            f"AI Request Truncated [{tag}]: {reason}",
            "stream_truncated",
            tag,
            fragments=fragments,
            reason=reason,
            **extra,
        )

    def log_stream_cancelled(self, tag: str, fragments: int, **extra: Any) -> None:
        """Client went away mid-stream."""
        self._log(
            logging.INFO,
            f"AI Request Cancelled [{tag}] by client",
            "stream_cancelled",
            tag,
            fragments=fragments,
            **extra,
        )

    def log_stream_error(self, tag: str, error: str, exc_info: bool = False, **extra: Any) -> None:
        self._log(
            logging.ERROR,
            f"AI Request Failed [{tag}]: {error}",
            "stream_failed",
            tag,
            exc_info=exc_info,
            error=error,
            **extra,
        )


class MetricsCollector:
    """Thread-safe in-memory counters and histograms, keyed by name and labels."""

    def __init__(self):
        self._counters: dict[str, int] = {}
        self._histograms: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(name: str, labels: dict[str, str] | None) -> str:
        if not labels:
            return name
        return name + "{" + ",".join(f"{k}={v}" for k, v in sorted(labels.items())) + "}"

    def increment(self, name: str, value: int = 1, labels: dict[str, str] | None = None) -> None:
        key = self._key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + value

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        with self._lock:
            return self._counters.get(self._key(name, labels), 0)

    def record_histogram(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        key = self._key(name, labels)
        with self._lock:
            self._histograms.setdefault(key, []).append(value)

    def snapshot(self) -> dict[str, Any]:
        """Counters plus count/min/max/avg per histogram."""
        with self._lock:
            return {
                "counters": dict(self._counters),
                "histograms": {
                    key: {
                        "count": len(values),
                        "min": min(values),
                        "max": max(values),
                        "avg": sum(values) / len(values),
                    }
                    for key, values in self._histograms.items()
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()


metrics = MetricsCollector()


def generate_request_id() -> str:
    return str(uuid4())


class RequestIDContext:
    """Bind a request ID (given or freshly generated) for the duration of a block."""

    def __init__(self, request_id: str | None = None):
        self.request_id = request_id or generate_request_id()
        self._token = None

    def __enter__(self) -> str:
        self._token = _request_id.set(self.request_id)
        return self.request_id

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _request_id.reset(self._token)
            self._token = None


stream_logger = StreamLogger()
