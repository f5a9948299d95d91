"""Structured JSON logger with context and trace correlation."""

import sys
import time
import uuid
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from typing import Any, TextIO

from admin_telemetry.core.encoding.ndjson import encode_record
from admin_telemetry.core.models import LogLevel, LogRecord, utc_timestamp

LogContext = Mapping[str, Any]


class StructuredLogger:
    """Emits one JSON line per log call.

    Each record carries the logger's service name, its standing context
    merged with the per-call context, and the current trace id. Records
    are written straight to the stream; encoding or write errors propagate
    to the caller.

    Example:
        ```python
        logger = StructuredLogger("shadcn-admin")
        logger.generate_trace_id()
        request_logger = logger.with_context({"userId": "12345"})
        request_logger.info("User profile updated", {"field": "email"})
        ```
    """

    def __init__(
        self,
        service: str,
        context: LogContext | None = None,
        trace_id: str | None = None,
        stream: TextIO | None = None,
        level: LogLevel | str = LogLevel.DEBUG,
    ) -> None:
        """Initialize the logger.

        Args:
            service: Name stamped on every record.
            context: Standing context merged into every record.
            trace_id: Initial correlation identifier.
            stream: Output stream. Defaults to sys.stdout, looked up at
                write time so that redirected stdout is honoured.
            level: Minimum level to emit.
        """
        self.service = service
        self._context: dict[str, Any] = dict(context or {})
        self._trace_id = trace_id
        self._stream = stream
        self.level = LogLevel(level)

    @property
    def context(self) -> dict[str, Any]:
        """Copy of the standing context."""
        return dict(self._context)

    def is_enabled_for(self, level: LogLevel | str) -> bool:
        return LogLevel(level).severity >= self.level.severity

    def log(
        self, level: LogLevel | str, message: str, context: LogContext | None = None
    ) -> LogRecord | None:
        """Build and emit a record.

        Args:
            level: One of debug, info, warn, error.
            message: Free-text message.
            context: Per-call context; its keys override standing context.

        Returns:
            The emitted record, or None if the level is filtered out.

        Raises:
            ValueError: If level is not a known log level.
        """
        log_level = LogLevel(level)
        if not self.is_enabled_for(log_level):
            return None
        merged = {**self._context, **(context or {})}
        record = LogRecord(
            timestamp=utc_timestamp(),
            level=log_level,
            service=self.service,
            message=message,
            context=merged or None,
            trace_id=self._trace_id,
        )
        self._write(record)
        return record

    def _write(self, record: LogRecord) -> None:
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write(encode_record(record) + "\n")

    def debug(self, message: str, context: LogContext | None = None) -> LogRecord | None:
        return self.log(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: LogContext | None = None) -> LogRecord | None:
        return self.log(LogLevel.INFO, message, context)

    def warn(self, message: str, context: LogContext | None = None) -> LogRecord | None:
        return self.log(LogLevel.WARN, message, context)

    def error(self, message: str, context: LogContext | None = None) -> LogRecord | None:
        return self.log(LogLevel.ERROR, message, context)

    def with_context(self, context: LogContext) -> "StructuredLogger":
        """Derive a logger with additional standing context.

        The new logger shares this logger's service, stream and level,
        starts with its current trace id, and uses this logger's context
        overridden by the given keys. This logger is not modified.
        """
        return StructuredLogger(
            self.service,
            context={**self._context, **context},
            trace_id=self._trace_id,
            stream=self._stream,
            level=self.level,
        )

    def generate_trace_id(self) -> str:
        """Replace the trace id with a fresh random UUID and return it."""
        self._trace_id = str(uuid.uuid4())
        return self._trace_id

    def set_trace_id(self, trace_id: str | None) -> None:
        self._trace_id = trace_id

    def get_trace_id(self) -> str | None:
        return self._trace_id

    @contextmanager
    def timed(
        self,
        message: str,
        level: LogLevel | str = LogLevel.INFO,
        **context: Any,
    ) -> Generator[None]:
        """Log entry and exit of a block, with elapsed milliseconds on exit.

        Args:
            message: The base log message
            level: Log level (default "info")
            **context: Additional structured fields
        """
        start = time.perf_counter()
        self.log(level, f"{message} [entry]", {"phase": "entry", **context})
        yield
        elapsed_ms = (time.perf_counter() - start) * 1000
        self.log(
            level,
            f"{message} [exit]",
            {"phase": "exit", "elapsedMs": elapsed_ms, **context},
        )


def create_logger(service: str, **kwargs: Any) -> StructuredLogger:
    """Create a service-specific logger.

    Args:
        service: Name stamped on every record.
        **kwargs: Passed through to StructuredLogger.

    Returns:
        A new StructuredLogger.
    """
    return StructuredLogger(service, **kwargs)
