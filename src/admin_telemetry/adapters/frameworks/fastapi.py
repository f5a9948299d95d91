"""FastAPI adapter for health and metrics endpoints."""

from fastapi import APIRouter, Request, Response

from admin_telemetry.adapters.frameworks import endpoints
from admin_telemetry.adapters.frameworks.endpoints import EndpointResponse
from admin_telemetry.core.health import HealthRegistry
from admin_telemetry.core.logs import StructuredLogger
from admin_telemetry.core.metrics import MetricsRegistry


def _to_response(result: EndpointResponse) -> Response:
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.media_type,
        headers=result.headers,
    )


def create_health_router(
    health: HealthRegistry,
    metrics: MetricsRegistry,
    logger: StructuredLogger,
    fault_injection: bool = True,
) -> APIRouter:
    """Create a FastAPI router with the health and metrics endpoints.

    Args:
        health: Registry the probe endpoints run.
        metrics: Registry rendered by /metrics.
        logger: Logger for endpoint diagnostics.
        fault_injection: Include /simulate-unhealthy and /restore-healthy.

    Returns:
        APIRouter with the endpoints configured.
    """
    router = APIRouter()

    @router.get("/healthz")
    async def healthz() -> Response:
        """Run the liveness checks."""
        return _to_response(await endpoints.liveness(health, logger))

    @router.get("/readyz")
    async def readyz() -> Response:
        """Run the readiness checks."""
        return _to_response(await endpoints.readiness(health, logger))

    @router.get("/metrics")
    async def get_metrics() -> Response:
        """Return metrics in Prometheus text format."""
        return _to_response(endpoints.metrics_text(metrics, logger))

    @router.get("/status")
    async def status() -> Response:
        return _to_response(endpoints.server_status(health, fault_injection))

    if fault_injection:

        @router.post("/simulate-unhealthy")
        async def simulate_unhealthy(request: Request) -> Response:
            """Force the test-failure check of one category to fail.

            Body: {"type": "liveness"} or {"type": "readiness"}.
            """
            check_type = endpoints.parse_check_type(await request.body())
            return _to_response(endpoints.simulate_unhealthy(health, logger, check_type))

        @router.post("/restore-healthy")
        async def restore_healthy() -> Response:
            """Make both test-failure checks pass again."""
            return _to_response(endpoints.restore_healthy(health, logger))

    return router
