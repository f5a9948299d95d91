"""admin_telemetry - health probes, Prometheus metrics and structured logs.

Example:
    ```python
    from admin_telemetry import HealthRegistry, MetricsRegistry, create_logger

    logger = create_logger("shadcn-admin")
    metrics = MetricsRegistry()
    health = HealthRegistry(logger)
    health.register_readiness("database", ping_database, timeout_ms=2000)
    ```
"""

from admin_telemetry.adapters.logging import StructuredLogHandler
from admin_telemetry.config import TelemetryConfig, load_config
from admin_telemetry.core.health import HealthRegistry
from admin_telemetry.core.logs import StructuredLogger, create_logger
from admin_telemetry.core.metrics import MetricsRegistry, canonical_labels
from admin_telemetry.core.models import (
    CheckResult,
    HealthCheck,
    HealthStatus,
    LogLevel,
    LogRecord,
    MetricKind,
    Status,
)
from admin_telemetry.errors import ConfigError, TelemetryError

__all__ = [
    "CheckResult",
    "ConfigError",
    "HealthCheck",
    "HealthRegistry",
    "HealthStatus",
    "LogLevel",
    "LogRecord",
    "MetricKind",
    "MetricsRegistry",
    "Status",
    "StructuredLogHandler",
    "StructuredLogger",
    "TelemetryConfig",
    "TelemetryError",
    "canonical_labels",
    "create_logger",
    "load_config",
]
