"""Text encoders for log records and metric snapshots."""

from admin_telemetry.core.encoding.ndjson import encode_record
from admin_telemetry.core.encoding.prometheus import encode_snapshot

__all__ = [
    "encode_record",
    "encode_snapshot",
]
