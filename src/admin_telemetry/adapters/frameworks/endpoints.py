"""Framework-independent handlers shared by the ASGI and FastAPI adapters.

Each handler returns an EndpointResponse; the adapters only translate it
into their framework's response type. Unexpected errors are logged and
turned into generic 500 responses here, so no internal detail reaches
the client.
"""

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from admin_telemetry.core.health import HealthRegistry
from admin_telemetry.core.logs import StructuredLogger
from admin_telemetry.core.metrics import MetricsRegistry
from admin_telemetry.core.models import HealthStatus, utc_timestamp
from admin_telemetry.probes import fixed_probe

JSON_CONTENT_TYPE = "application/json"
PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"
PLAIN_CONTENT_TYPE = "text/plain; charset=utf-8"
NO_CACHE = {"cache-control": "no-cache, no-store, must-revalidate"}

FAULT_CHECK_NAME = "test-failure"
CHECK_TYPES = ("liveness", "readiness")

ENDPOINTS = {
    "/healthz": "Liveness probe",
    "/readyz": "Readiness probe",
    "/metrics": "Prometheus metrics",
    "/simulate-unhealthy": "POST to simulate unhealthy state",
    "/restore-healthy": "POST to restore healthy state",
    "/status": "Server status",
}


@dataclass(frozen=True)
class EndpointResponse:
    """Status, content type, body and extra headers of a response."""

    status_code: int
    media_type: str
    body: str
    headers: dict[str, str] = field(default_factory=dict)


def _json(status_code: int, data: Any, headers: dict[str, str] | None = None) -> EndpointResponse:
    return EndpointResponse(status_code, JSON_CONTENT_TYPE, json.dumps(data), headers or {})


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


async def _health_endpoint(
    kind: str,
    run_checks: Callable[[], Awaitable[HealthStatus]],
    logger: StructuredLogger,
) -> EndpointResponse:
    name = "Healthz" if kind == "liveness" else "Readyz"
    try:
        logger.info(f"{name} endpoint called")
        status = await run_checks()
        logger.info(
            f"{name} check completed",
            {"status": str(status.status), "checkCount": len(status.checks)},
        )
        return _json(200 if status.healthy else 503, status.to_dict(), NO_CACHE)
    except Exception as e:
        logger.error(f"{name} check failed", {"error": _error_message(e)})
        body = {
            "status": "unhealthy",
            "timestamp": utc_timestamp(),
            "error": "Internal server error",
        }
        return _json(500, body, NO_CACHE)


async def liveness(health: HealthRegistry, logger: StructuredLogger) -> EndpointResponse:
    """GET /healthz: 200 when all liveness checks pass, else 503."""
    return await _health_endpoint("liveness", health.check_liveness, logger)


async def readiness(health: HealthRegistry, logger: StructuredLogger) -> EndpointResponse:
    """GET /readyz: 200 when all readiness checks pass, else 503."""
    return await _health_endpoint("readiness", health.check_readiness, logger)


def metrics_text(metrics: MetricsRegistry, logger: StructuredLogger) -> EndpointResponse:
    """GET /metrics: the registry rendered in Prometheus text format."""
    try:
        logger.info("Metrics endpoint called")
        body = metrics.get_metrics()
        logger.info("Metrics endpoint completed", {"metricsLength": len(body)})
        return EndpointResponse(200, PROMETHEUS_CONTENT_TYPE, body, NO_CACHE)
    except Exception as e:
        logger.error("Metrics endpoint failed", {"error": _error_message(e)})
        return EndpointResponse(
            500, PLAIN_CONTENT_TYPE, "# Error generating metrics", NO_CACHE
        )


def parse_check_type(raw_body: bytes) -> str | None:
    """Extract the ``type`` field of a simulate-unhealthy request body.

    Returns:
        "liveness" or "readiness", or None if the body is not a JSON
        object naming one of them.
    """
    try:
        payload = json.loads(raw_body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    check_type = payload.get("type")
    return check_type if check_type in CHECK_TYPES else None


def simulate_unhealthy(
    health: HealthRegistry, logger: StructuredLogger, check_type: str | None
) -> EndpointResponse:
    """POST /simulate-unhealthy: force the test-failure check to fail.

    Re-registers the ``test-failure`` check of the given category with a
    probe that reports unhealthy.
    """
    logger.info("Simulating unhealthy state", {"type": check_type})
    if check_type == "liveness":
        health.register_liveness(FAULT_CHECK_NAME, fixed_probe(False))
    elif check_type == "readiness":
        health.register_readiness(FAULT_CHECK_NAME, fixed_probe(False))
    else:
        return _json(400, {"error": "type must be 'liveness' or 'readiness'"})
    return _json(200, {"message": f"Simulated {check_type} unhealthy state"})


def restore_healthy(health: HealthRegistry, logger: StructuredLogger) -> EndpointResponse:
    """POST /restore-healthy: make the test-failure checks pass again."""
    logger.info("Restoring healthy state")
    health.register_liveness(FAULT_CHECK_NAME, fixed_probe(True))
    health.register_readiness(FAULT_CHECK_NAME, fixed_probe(True))
    return _json(200, {"message": "Restored healthy state"})


def server_status(health: HealthRegistry, fault_injection: bool = True) -> EndpointResponse:
    """GET /status: endpoint list and registered check names."""
    endpoints = {
        path: description
        for path, description in ENDPOINTS.items()
        if fault_injection or path not in ("/simulate-unhealthy", "/restore-healthy")
    }
    return _json(
        200,
        {
            "server": "Health Check Server",
            "endpoints": endpoints,
            "checks": {
                "liveness": health.liveness_checks,
                "readiness": health.readiness_checks,
            },
        },
    )
