"""Core domain models for logs and health checks."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

# A probe is called with no arguments and returns a bool, or an awaitable
# resolving to one.
Probe = Callable[[], Awaitable[bool] | bool]

DEFAULT_CHECK_TIMEOUT_MS = 5000


class LogLevel(StrEnum):
    """Levels accepted by the structured logger, lowest first."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def severity(self) -> int:
        return list(LogLevel).index(self)


class Status(StrEnum):
    """Outcome of a single check or of a whole check batch."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


def utc_timestamp() -> str:
    """Return the current UTC time as ISO-8601 with millisecond precision."""
    now = datetime.now(UTC)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class LogRecord:
    """A structured log record.

    Attributes:
        timestamp: ISO-8601 UTC timestamp.
        level: One of debug, info, warn, error.
        service: Name of the emitting process.
        message: Free-text message.
        context: Merged key/value context, or None when there is none.
        trace_id: Correlation identifier, or None.
    """

    timestamp: str
    level: LogLevel
    service: str
    message: str
    context: Mapping[str, Any] | None = None
    trace_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form; absent context and trace id are omitted."""
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "level": str(self.level),
            "service": self.service,
            "message": self.message,
        }
        if self.context is not None:
            data["context"] = dict(self.context)
        if self.trace_id is not None:
            data["traceId"] = self.trace_id
        return data


class MetricKind(StrEnum):
    """Prometheus metric family types supported by the registry."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass(frozen=True)
class MetricFamily:
    """Point-in-time copy of one named metric and all of its series.

    Attributes:
        name: Metric name (e.g., http_requests_total).
        kind: Counter, gauge or histogram.
        help_text: Text for the ``# HELP`` line.
        series: Canonical label-set to current value for counters and
            gauges, or to the tuple of observations for histograms.
    """

    name: str
    kind: MetricKind
    help_text: str
    series: dict[str, float] | dict[str, tuple[float, ...]] = field(
        default_factory=dict
    )


@dataclass(frozen=True)
class HealthCheck:
    """A named probe with its timeout.

    Attributes:
        name: Unique name within its category (liveness or readiness).
        probe: Zero-argument callable reporting health.
        timeout_ms: Milliseconds the probe may run before it is
            reported as timed out.
    """

    name: str
    probe: Probe
    timeout_ms: int = DEFAULT_CHECK_TIMEOUT_MS


@dataclass(frozen=True)
class CheckResult:
    """Recorded outcome of one check within a batch."""

    status: Status
    duration_ms: int
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": str(self.status)}
        if self.message is not None:
            data["message"] = self.message
        data["durationMs"] = self.duration_ms
        return data


@dataclass(frozen=True)
class HealthStatus:
    """Aggregate result of running one category of checks.

    Attributes:
        status: Unhealthy if any check is unhealthy, otherwise healthy.
        timestamp: ISO-8601 UTC time the aggregate was produced.
        checks: Per-check results keyed by check name.
    """

    status: Status
    timestamp: str
    checks: dict[str, CheckResult] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.status == Status.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": str(self.status),
            "timestamp": self.timestamp,
            "checks": {name: result.to_dict() for name, result in self.checks.items()},
        }
