"""BDD step definitions for the health probe and fault injection features."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from pytest_bdd import given, parsers, then, when

from admin_telemetry.adapters.frameworks.asgi import create_asgi_app
from admin_telemetry.core.health import HealthRegistry
from admin_telemetry.core.logs import StructuredLogger
from admin_telemetry.core.metrics import MetricsRegistry
from tests.conftest import CapturedStream


@dataclass
class HealthScenarioContext:
    """Shared state between steps in a health scenario."""

    log_stream: CapturedStream = field(default_factory=CapturedStream)
    health: HealthRegistry | None = None
    metrics: MetricsRegistry = field(default_factory=MetricsRegistry)
    logger: StructuredLogger | None = None
    response: httpx.Response | None = None


def run_async(coro: Any) -> Any:
    """Run a coroutine synchronously."""
    return asyncio.run(coro)


async def send_request(
    ctx: HealthScenarioContext, method: str, path: str, body: dict[str, Any] | None = None
) -> httpx.Response:
    """Send one request to the ASGI app built from the scenario registries."""
    app = create_asgi_app(ctx.health, ctx.metrics, ctx.logger)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.request(method, path, json=body)


@pytest.fixture
def ctx() -> HealthScenarioContext:
    """Fresh scenario context for each test."""
    context = HealthScenarioContext()
    context.logger = StructuredLogger("bdd-service", stream=context.log_stream)
    context.health = HealthRegistry(context.logger)
    return context


# === Given ===
@given(parsers.parse('a health server with a passing "{name}" liveness check'))
def step_server(ctx: HealthScenarioContext, name: str) -> None:
    ctx.health.register_liveness(name, lambda: True)


@given(parsers.parse('a readiness check "{name}" that hangs past a {timeout:d} ms timeout'))
def step_hanging_check(ctx: HealthScenarioContext, name: str, timeout: int) -> None:
    async def hangs() -> bool:
        await asyncio.sleep(10)
        return True

    ctx.health.register_readiness(name, hangs, timeout_ms=timeout)


# === When ===
@when(parsers.parse('a GET request is made to "{path}"'))
def step_get(ctx: HealthScenarioContext, path: str) -> None:
    ctx.response = run_async(send_request(ctx, "GET", path))


@when(parsers.parse("the {check_type} probe is made unhealthy"))
def step_simulate(ctx: HealthScenarioContext, check_type: str) -> None:
    ctx.response = run_async(
        send_request(ctx, "POST", "/simulate-unhealthy", {"type": check_type})
    )
    assert ctx.response.status_code == 200


@when(parsers.parse('a simulate request is sent with type "{check_type}"'))
def step_simulate_raw(ctx: HealthScenarioContext, check_type: str) -> None:
    ctx.response = run_async(
        send_request(ctx, "POST", "/simulate-unhealthy", {"type": check_type})
    )


@when("healthy state is restored")
def step_restore(ctx: HealthScenarioContext) -> None:
    ctx.response = run_async(send_request(ctx, "POST", "/restore-healthy"))
    assert ctx.response.status_code == 200


# === Then ===
@then(parsers.parse("the response status should be {code:d}"))
def step_status_code(ctx: HealthScenarioContext, code: int) -> None:
    assert ctx.response is not None
    assert ctx.response.status_code == code


@then(parsers.parse('the reported status should be "{status}"'))
def step_reported_status(ctx: HealthScenarioContext, status: str) -> None:
    assert ctx.response.json()["status"] == status


@then(parsers.parse('the check "{name}" should be "{status}"'))
def step_check_status(ctx: HealthScenarioContext, name: str, status: str) -> None:
    assert ctx.response.json()["checks"][name]["status"] == status


@then(parsers.parse('the check "{name}" should report "{message}"'))
def step_check_message(ctx: HealthScenarioContext, name: str, message: str) -> None:
    assert ctx.response.json()["checks"][name]["message"] == message
