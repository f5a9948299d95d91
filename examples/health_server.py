"""Example health server for the admin dashboard.

Run with:
    uvicorn examples.health_server:app --port 8080
or:
    python -m examples.health_server

Endpoints:
    /healthz              - Liveness probe (200 healthy, 503 unhealthy)
    /readyz               - Readiness probe (200 healthy, 503 unhealthy)
    /metrics              - Prometheus text format
    /status               - Endpoint list and registered checks
    /simulate-unhealthy   - POST {"type": "liveness" | "readiness"}
    /restore-healthy      - POST to make the simulated checks pass again

Configuration is read from the environment (SERVICE_NAME, LOG_LEVEL,
HEALTH_CHECK_TIMEOUT_MS, MEMORY_MAX_PERCENT, DATABASE_PATH,
ENABLE_FAULT_INJECTION).
"""

import asyncio
import logging

from admin_telemetry.app import build_telemetry, create_app, install_log_bridge

telemetry = build_telemetry()
install_log_bridge(telemetry.logger)
app = create_app(telemetry)

# Application metrics live next to the built-in HTTP families.
telemetry.metrics.describe("users_created_total", "counter", "Total users created")
telemetry.metrics.describe("active_sessions", "gauge", "Currently active sessions")


@app.get("/")
async def root() -> dict[str, str]:
    """Landing endpoint; recorded by the request middleware."""
    return {"message": "Hello! Check /healthz, /readyz and /metrics."}


@app.post("/users")
async def create_user() -> dict[str, str]:
    """Simulated user creation with a timed database write."""
    logger = telemetry.logger.with_context({"route": "/users"})
    logger.generate_trace_id()
    with logger.timed("Create user", table="users"):
        await asyncio.sleep(0.02)
    telemetry.metrics.counter("users_created_total", labels={"role": "member"})
    return {"status": "created"}


@app.post("/sessions/{count}")
async def set_sessions(count: int) -> dict[str, int]:
    """Set the active-session gauge."""
    telemetry.metrics.gauge("active_sessions", count)
    logging.getLogger("examples.sessions").info("active sessions set to %d", count)
    return {"active_sessions": count}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080, log_config=None)
