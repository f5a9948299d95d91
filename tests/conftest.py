"""Shared test fixtures for all test modules."""

import io
import json
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest

from admin_telemetry.core.health import HealthRegistry
from admin_telemetry.core.logs import StructuredLogger
from admin_telemetry.core.metrics import MetricsRegistry


class CapturedStream(io.StringIO):
    """StringIO that also parses what was written as JSON lines."""

    def records(self) -> list[dict[str, Any]]:
        return [json.loads(line) for line in self.getvalue().splitlines() if line]


@pytest.fixture
def log_stream() -> CapturedStream:
    """Stream the test logger writes to."""
    return CapturedStream()


@pytest.fixture
def logger(log_stream: CapturedStream) -> StructuredLogger:
    """Logger writing every level to log_stream."""
    return StructuredLogger("test-service", stream=log_stream)


@pytest.fixture
def metrics() -> MetricsRegistry:
    """Empty metrics registry."""
    return MetricsRegistry()


@pytest.fixture
def health(logger: StructuredLogger) -> HealthRegistry:
    """Empty health registry logging to log_stream."""
    return HealthRegistry(logger)


# === ASGI Test Fixtures ===


@pytest.fixture
def basic_asgi_app():
    """Basic ASGI app fixture that returns 200 OK."""
    from admin_telemetry.adapters.frameworks.asgi import Receive, Scope, Send

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        """Simple ASGI app that returns 200 OK."""
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"OK"})

    return app


@pytest.fixture
def asgi_scope():
    """Factory fixture for creating ASGI scope dicts."""
    from admin_telemetry.adapters.frameworks.asgi import Scope

    def _scope(method: str = "GET", path: str = "/test") -> Scope:
        return {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": b"",
            "headers": [],
        }

    return _scope


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture."""

    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        """Capture ASGI messages."""
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Returns a callable that accepts an ASGI app and yields a client
    with ASGITransport configured.

    Usage:
        async def test_something(asgi_test_client):
            app = create_asgi_app(health, metrics, logger)
            async with asgi_test_client(app) as client:
                response = await client.get("/healthz")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client


@pytest.fixture
async def asgi_client(
    health: HealthRegistry,
    metrics: MetricsRegistry,
    logger: StructuredLogger,
    asgi_test_client,
) -> AsyncGenerator[httpx.AsyncClient]:
    """Client for the generic ASGI app built on the shared registries."""
    from admin_telemetry.adapters.frameworks.asgi import create_asgi_app

    app = create_asgi_app(health, metrics, logger)
    async with asgi_test_client(app) as client:
        yield client
