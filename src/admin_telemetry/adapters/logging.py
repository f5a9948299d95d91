"""Python logging handler adapter for admin_telemetry.

This adapter bridges Python's standard library logging module to a
StructuredLogger, so that records from libraries such as uvicorn or
aiosqlite come out as the same JSON lines as the application's own.
"""

import logging
import traceback
from typing import Any

from admin_telemetry.core.logs import StructuredLogger
from admin_telemetry.core.models import LogLevel

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


def _level_for(levelno: int) -> LogLevel:
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARN
    if levelno >= logging.INFO:
        return LogLevel.INFO
    return LogLevel.DEBUG


class StructuredLogHandler(logging.Handler):
    """Logging handler that re-emits records through a StructuredLogger.

    WARNING maps to warn and CRITICAL to error.

    Example:
        ```python
        logger = StructuredLogger("shadcn-admin")
        logging.getLogger().addHandler(StructuredLogHandler(logger))
        ```
    """

    def __init__(self, logger: StructuredLogger, level: int = logging.NOTSET) -> None:
        """Initialize the handler.

        Args:
            logger: Structured logger records are forwarded to.
            level: Minimum stdlib level handled.
        """
        super().__init__(level)
        self._logger = logger

    def emit(self, record: logging.LogRecord) -> None:
        """Forward a log record to the structured logger.

        Args:
            record: The log record to emit.
        """
        context: dict[str, Any] = {
            "logger": record.name,
            "module": record.module,
            "funcName": record.funcName or "",
            "lineno": record.lineno,
        }

        # Add any extra attributes passed via logging call
        for key, value in record.__dict__.items():
            if key not in _STANDARD_LOGRECORD_ATTRS and isinstance(
                value, (str, int, float, bool)
            ):
                context[key] = value

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None:
                context["exc_type"] = exc_type.__name__
            if exc_value is not None:
                context["exc_message"] = str(exc_value)
            if exc_tb is not None:
                context["exc_traceback"] = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                )

        self._logger.log(_level_for(record.levelno), record.getMessage(), context)
