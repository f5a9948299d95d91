"""JSON-lines encoder for log records."""

import json

from admin_telemetry.core.models import LogRecord


def encode_record(record: LogRecord) -> str:
    """Encode a single log record as one line of JSON.

    Values that are not JSON-native are rendered with ``str()``.

    Args:
        record: The record to encode.

    Returns:
        JSON object text without a trailing newline.
    """
    return json.dumps(record.to_dict(), default=str)
