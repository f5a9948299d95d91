"""Prometheus text exposition encoder for metric snapshots."""

import math
from collections.abc import Iterable, Sequence

from admin_telemetry.core.models import MetricFamily, MetricKind

HISTOGRAM_BUCKETS = (0.1, 0.5, 1.0, 5.0)
PERCENTILES = (("p50", 0.5), ("p95", 0.95), ("p99", 0.99))


def format_value(value: float) -> str:
    """Render a sample value the way Prometheus expects it.

    Integral values drop the fractional part so that a counter reads ``8``
    rather than ``8.0``.
    """
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def percentile(values: Sequence[float], p: float) -> float:
    """Nearest-rank percentile without interpolation.

    Sorts a copy of the observations and returns the element at
    ``floor(n * p)``, clamped to the last index.

    Args:
        values: Observations; must not be empty.
        p: Fraction between 0 and 1.

    Returns:
        The selected observation.
    """
    ordered = sorted(values)
    index = min(math.floor(len(ordered) * p), len(ordered) - 1)
    return ordered[index]


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _with_labels(name: str, labels: str) -> str:
    return f"{name}{{{labels}}}" if labels else name


def _join_labels(labels: str, extra: str) -> str:
    return f"{labels},{extra}" if labels else extra


def _encode_histogram(name: str, labels: str, observations: Sequence[float]) -> list[str]:
    count = len(observations)
    lines = [
        f"{_with_labels(name + '_sum', labels)} {format_value(math.fsum(observations))}",
        f"{_with_labels(name + '_count', labels)} {count}",
    ]
    for boundary in HISTOGRAM_BUCKETS:
        le = f'le="{format_value(boundary)}"'
        within = sum(1 for v in observations if v <= boundary)
        lines.append(f"{name}_bucket{{{_join_labels(labels, le)}}} {within}")
    inf = _join_labels(labels, 'le="+Inf"')
    lines.append(f"{name}_bucket{{{inf}}} {count}")
    for suffix, p in PERCENTILES:
        value = percentile(observations, p)
        lines.append(f"{_with_labels(f'{name}_{suffix}', labels)} {format_value(value)}")
    return lines


def encode_family(family: MetricFamily) -> list[str]:
    """Encode one metric family, header comments first.

    Args:
        family: Snapshot of a single named metric.

    Returns:
        Lines of exposition text without newlines.
    """
    lines = [
        f"# HELP {family.name} {_escape_help(family.help_text)}",
        f"# TYPE {family.name} {family.kind}",
    ]
    for labels in sorted(family.series):
        value = family.series[labels]
        if family.kind == MetricKind.HISTOGRAM:
            if value:
                lines.extend(_encode_histogram(family.name, labels, value))
        else:
            lines.append(f"{_with_labels(family.name, labels)} {format_value(value)}")
    return lines


def encode_snapshot(families: Iterable[MetricFamily]) -> str:
    """Encode metric families to Prometheus text format.

    Families are emitted sorted by name so repeated encodes of the same
    snapshot are byte-identical.

    Args:
        families: Snapshot produced by the metrics registry.

    Returns:
        Exposition text terminated by a newline.
        Empty string if there are no families.
    """
    lines: list[str] = []
    for family in sorted(families, key=lambda f: f.name):
        lines.extend(encode_family(family))

    if not lines:
        return ""

    return "\n".join(lines) + "\n"
