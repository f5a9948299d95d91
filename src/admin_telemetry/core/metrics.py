"""In-memory metrics registry with Prometheus text rendering."""

import threading
from collections import defaultdict

from admin_telemetry.core.encoding.prometheus import encode_snapshot, percentile
from admin_telemetry.core.models import MetricFamily, MetricKind

# Canonical key for a series without labels. Real label-sets always
# contain at least one `key="value"` pair, so they never collide with it.
NO_LABELS = ""

HTTP_REQUESTS_TOTAL = "http_requests_total"
HTTP_REQUEST_DURATION_SECONDS = "http_request_duration_seconds"
HTTP_ERRORS_TOTAL = "http_errors_total"

_HTTP_FAMILIES = (
    (HTTP_REQUESTS_TOTAL, MetricKind.COUNTER, "Total number of HTTP requests"),
    (
        HTTP_REQUEST_DURATION_SECONDS,
        MetricKind.HISTOGRAM,
        "HTTP request duration in seconds",
    ),
    (HTTP_ERRORS_TOTAL, MetricKind.COUNTER, "Total number of HTTP errors"),
)

__all__ = [
    "HTTP_ERRORS_TOTAL",
    "HTTP_REQUESTS_TOTAL",
    "HTTP_REQUEST_DURATION_SECONDS",
    "MetricsRegistry",
    "NO_LABELS",
    "canonical_labels",
    "percentile",
]


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def canonical_labels(labels: dict[str, str] | None) -> str:
    """Canonicalize a label-set for use as a series key.

    Keys are sorted lexicographically and rendered as ``key="value"`` pairs
    joined by commas. Values are escaped as in the exposition format.

    Args:
        labels: Label names to values, or None.

    Returns:
        The canonical string, or NO_LABELS for an empty label-set.
    """
    if not labels:
        return NO_LABELS
    return ",".join(f'{k}="{_escape(str(v))}"' for k, v in sorted(labels.items()))


class MetricsRegistry:
    """Process-wide store of counters, gauges and histograms.

    Every update runs under one lock, and get_metrics() copies all series
    under the same lock, so a render never sees a half-applied update.

    Histogram observations are kept in full for percentile rendering and
    are never trimmed; only reset() releases them.

    A name belongs to a single kind: using or describing it as another kind
    raises ValueError, and the registry is left unchanged.

    Example:
        ```python
        metrics = MetricsRegistry()
        metrics.counter("users_created_total", labels={"role": "admin"})
        metrics.observe_http("GET", "/users", 200, 42)
        body = metrics.get_metrics()
        ```
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, dict[str, float]] = defaultdict(dict)
        self._gauges: dict[str, dict[str, float]] = defaultdict(dict)
        self._histograms: dict[str, dict[str, list[float]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._descriptions: dict[str, tuple[MetricKind, str]] = {}
        for name, kind, help_text in _HTTP_FAMILIES:
            self.describe(name, kind, help_text)

    def describe(self, name: str, kind: MetricKind, help_text: str) -> None:
        """Register HELP text for a metric family.

        Described families are rendered (header only) even before their
        first update, and their descriptions survive reset().

        Args:
            name: Metric name.
            kind: Family type written on the ``# TYPE`` line.
            help_text: Text for the ``# HELP`` line.
        """
        metric_kind = MetricKind(kind)
        with self._lock:
            self._check_kind(name, metric_kind)
            self._descriptions[name] = (metric_kind, help_text)

    def counter(
        self,
        name: str,
        delta: float = 1,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Add delta to a counter series, creating it at zero if absent.

        The sign of delta is not checked.
        """
        key = canonical_labels(labels)
        with self._lock:
            self._check_kind(name, MetricKind.COUNTER)
            series = self._counters[name]
            series[key] = series.get(key, 0) + delta

    def gauge(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge series to value, replacing any previous value."""
        key = canonical_labels(labels)
        with self._lock:
            self._check_kind(name, MetricKind.GAUGE)
            self._gauges[name][key] = value

    def histogram(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Append an observation to a histogram series."""
        key = canonical_labels(labels)
        with self._lock:
            self._check_kind(name, MetricKind.HISTOGRAM)
            self._histograms[name][key].append(value)

    def observe_http(
        self,
        method: str,
        path: str,
        status_code: int,
        response_time_ms: float,
    ) -> None:
        """Record one HTTP exchange.

        Increments the request counter, records the duration in seconds and,
        for status codes of 400 and above, increments the error counter.

        Args:
            method: HTTP method (e.g., "GET").
            path: Request path.
            status_code: Response status code.
            response_time_ms: Elapsed time in milliseconds.
        """
        status_labels = {"method": method, "path": path, "status": str(status_code)}
        self.counter(HTTP_REQUESTS_TOTAL, 1, status_labels)
        self.histogram(
            HTTP_REQUEST_DURATION_SECONDS,
            response_time_ms / 1000,
            {"method": method, "path": path},
        )
        if status_code >= 400:
            self.counter(HTTP_ERRORS_TOTAL, 1, status_labels)

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Return the current value of a counter series (0 if absent)."""
        with self._lock:
            return self._counters.get(name, {}).get(canonical_labels(labels), 0)

    def get_gauge(
        self, name: str, labels: dict[str, str] | None = None
    ) -> float | None:
        """Return the current value of a gauge series, or None if never set."""
        with self._lock:
            return self._gauges.get(name, {}).get(canonical_labels(labels))

    def get_observations(
        self, name: str, labels: dict[str, str] | None = None
    ) -> list[float]:
        """Return a copy of a histogram series' observations in arrival order."""
        with self._lock:
            series = self._histograms.get(name, {})
            return list(series.get(canonical_labels(labels), []))

    def snapshot(self) -> list[MetricFamily]:
        """Copy every family and series under the registry lock."""
        with self._lock:
            families: dict[str, MetricFamily] = {}
            for name, (kind, help_text) in self._descriptions.items():
                families[name] = MetricFamily(name, kind, help_text)
            for kind, store in (
                (MetricKind.COUNTER, self._counters),
                (MetricKind.GAUGE, self._gauges),
            ):
                for name, series in store.items():
                    families[name] = MetricFamily(
                        name, kind, self._help_for(name, kind), dict(series)
                    )
            for name, hist_series in self._histograms.items():
                families[name] = MetricFamily(
                    name,
                    MetricKind.HISTOGRAM,
                    self._help_for(name, MetricKind.HISTOGRAM),
                    {key: tuple(values) for key, values in hist_series.items()},
                )
        return list(families.values())

    def _check_kind(self, name: str, kind: MetricKind) -> None:
        """Raise ValueError if name already belongs to another kind.

        Must be called with the lock held.
        """
        owners = {
            MetricKind.COUNTER: self._counters,
            MetricKind.GAUGE: self._gauges,
            MetricKind.HISTOGRAM: self._histograms,
        }
        for other, store in owners.items():
            if other != kind and name in store:
                raise ValueError(f"metric {name!r} is already a {other}, not a {kind}")
        description = self._descriptions.get(name)
        if description is not None and description[0] != kind:
            raise ValueError(
                f"metric {name!r} is described as a {description[0]}, not a {kind}"
            )

    def _help_for(self, name: str, kind: MetricKind) -> str:
        description = self._descriptions.get(name)
        if description is not None:
            return description[1]
        return f"{kind.capitalize()} {name}"

    def get_metrics(self) -> str:
        """Render all metrics in Prometheus text exposition format.

        An empty registry renders only the header comments of the
        described families.
        """
        return encode_snapshot(self.snapshot())

    def reset(self) -> None:
        """Drop every counter, gauge and histogram series."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
