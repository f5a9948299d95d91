"""ASGI generic adapter for health and metrics endpoints.

This adapter provides a framework-agnostic ASGI application that can be used
with any ASGI server (uvicorn, hypercorn, daphne) without requiring FastAPI
as a dependency, plus a middleware that records every request.
"""

import fnmatch
import time
import uuid
from collections.abc import Callable, Coroutine
from typing import Any

from admin_telemetry.adapters.frameworks import endpoints
from admin_telemetry.adapters.frameworks.endpoints import EndpointResponse
from admin_telemetry.core.health import HealthRegistry
from admin_telemetry.core.logs import StructuredLogger
from admin_telemetry.core.metrics import MetricsRegistry
from admin_telemetry.core.models import LogLevel

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]


def _extract_request_id(scope: Scope, header_name: str = "X-Request-ID") -> str:
    """Extract or generate a request ID from ASGI scope headers.

    Searches for the specified header (case-insensitive). If not found,
    generates a new UUID.

    Args:
        scope: ASGI scope dictionary containing request metadata.
        header_name: Name of the header to search for (default: "X-Request-ID").

    Returns:
        Request ID string (either from header or newly generated UUID).
    """
    header_bytes = header_name.lower().encode()
    headers: list[tuple[bytes, bytes]] = scope.get("headers", [])
    for name, value in headers:
        if name.lower() == header_bytes:
            return str(value.decode("utf-8", errors="replace"))

    return str(uuid.uuid4())


def _get_log_level_for_status(status_code: int) -> LogLevel:
    """Determine log level based on HTTP status code.

    Maps status codes to log levels:
    - 400-499 (4xx) → warn
    - 500-599 (5xx) → error
    - Other → info
    """
    if 400 <= status_code < 500:
        return LogLevel.WARN
    if 500 <= status_code < 600:
        return LogLevel.ERROR
    return LogLevel.INFO


async def _read_body(receive: Receive) -> bytes:
    """Collect the full request body from http.request messages."""
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


async def _send_response(
    send: Send,
    status: int,
    content_type: str,
    body: str,
    extra_headers: dict[str, str] | None = None,
) -> None:
    """Send an HTTP response with headers and body.

    Args:
        send: ASGI send callable for writing response.
        status: HTTP status code.
        content_type: Content-Type header value.
        body: Response body as string (will be encoded to bytes).
        extra_headers: Additional response headers.
    """
    headers = [(b"content-type", content_type.encode())]
    for name, value in (extra_headers or {}).items():
        headers.append((name.lower().encode(), value.encode()))
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body.encode()})


async def _send_endpoint(send: Send, response: EndpointResponse) -> None:
    await _send_response(
        send, response.status_code, response.media_type, response.body, response.headers
    )


class ASGIObservabilityMiddleware:
    """ASGI middleware that records metrics and a log line per request.

    Each request is timed and passed to MetricsRegistry.observe_http().
    The log record is written through a logger derived for the request,
    whose trace id is the incoming request id header or a fresh UUID; the
    id is echoed back in the response headers.
    """

    def __init__(
        self,
        app: ASGIApp,
        metrics: MetricsRegistry | None,
        logger: StructuredLogger | None,
        exclude_paths: list[str] | None = None,
        request_id_header: str = "X-Request-ID",
    ) -> None:
        """Initialize the middleware with a wrapped app and registries.

        Args:
            app: The ASGI application to wrap.
            metrics: Registry receiving observe_http() calls (optional).
            logger: Logger request records are derived from (optional).
            exclude_paths: List of paths to exclude from logging/metrics.
                          Supports exact matches and wildcard patterns
                          (e.g., "/internal/*").
            request_id_header: Name of the header to extract request ID from
                             (default: "X-Request-ID").
        """
        self.app = app
        self.metrics = metrics
        self.logger = logger
        self.exclude_paths = exclude_paths or []
        self.request_id_header = request_id_header

    def _path_excluded(self, path: str) -> bool:
        """Check if path matches any pattern in exclude_paths."""
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI callable interface that processes requests through the wrapped app."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        request_id = _extract_request_id(scope, self.request_id_header)
        id_header = (self.request_id_header.lower().encode(), request_id.encode())
        captured: dict[str, Any] = {"status": None, "body_size": 0, "exception": None}

        async def wrapped_send(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                captured["status"] = message["status"]
                headers = list(message.get("headers", []))
                if not any(name.lower() == id_header[0] for name, _ in headers):
                    headers.append(id_header)
                message = {**message, "headers": headers}
            elif message["type"] == "http.response.body":
                captured["body_size"] += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, wrapped_send)
        except Exception as e:
            captured["exception"] = e
            captured["status"] = 500

        duration_ms = (time.perf_counter() - start_time) * 1000
        self._record_observability(scope, request_id, captured, duration_ms)
        if captured["exception"] is not None:
            raise captured["exception"]

    def _record_observability(
        self,
        scope: Scope,
        request_id: str,
        captured: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """Record the log line and metrics for the request."""
        if self._path_excluded(scope["path"]):
            return
        status_code = captured["status"] or 0
        if self.logger is not None:
            request_logger = self.logger.with_context({"requestId": request_id})
            request_logger.set_trace_id(request_id)
            request_data: dict[str, Any] = {
                "method": scope["method"],
                "path": scope["path"],
                "status": status_code,
                "responseBodySize": captured["body_size"],
                "responseTime": duration_ms,
            }
            if captured["exception"] is not None:
                exc = captured["exception"]
                request_data["exception"] = f"{type(exc).__name__}: {exc!s}"
            request_logger.log(
                _get_log_level_for_status(status_code),
                f"{scope['method']} {scope['path']}",
                request_data,
            )
        if self.metrics is not None and captured["status"] is not None:
            self.metrics.observe_http(
                scope["method"], scope["path"], captured["status"], duration_ms
            )


def create_asgi_app(
    health: HealthRegistry,
    metrics: MetricsRegistry,
    logger: StructuredLogger,
    fault_injection: bool = True,
) -> ASGIApp:
    """Create an ASGI app serving the health and metrics endpoints.

    Routes: GET /healthz, GET /readyz, GET /metrics, GET /status and, when
    fault_injection is enabled, POST /simulate-unhealthy and
    POST /restore-healthy.

    Args:
        health: Registry the probe endpoints run.
        metrics: Registry rendered by /metrics.
        logger: Logger for endpoint diagnostics.
        fault_injection: Mount the simulate/restore endpoints.

    Returns:
        ASGI application callable.
    """
    get_routes: dict[str, Callable[[], Coroutine[Any, Any, EndpointResponse]]] = {}

    async def healthz() -> EndpointResponse:
        return await endpoints.liveness(health, logger)

    async def readyz() -> EndpointResponse:
        return await endpoints.readiness(health, logger)

    async def metrics_endpoint() -> EndpointResponse:
        return endpoints.metrics_text(metrics, logger)

    async def status() -> EndpointResponse:
        return endpoints.server_status(health, fault_injection)

    get_routes["/healthz"] = healthz
    get_routes["/readyz"] = readyz
    get_routes["/metrics"] = metrics_endpoint
    get_routes["/status"] = status
    post_paths = {"/simulate-unhealthy", "/restore-healthy"} if fault_injection else set()

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        path = scope["path"]
        method = scope["method"]

        if path in get_routes:
            if method != "GET":
                await _send_response(send, 405, "text/plain", "Method Not Allowed")
                return
            await _send_endpoint(send, await get_routes[path]())
        elif path in post_paths:
            if method != "POST":
                await _send_response(send, 405, "text/plain", "Method Not Allowed")
                return
            if path == "/simulate-unhealthy":
                check_type = endpoints.parse_check_type(await _read_body(receive))
                await _send_endpoint(
                    send, endpoints.simulate_unhealthy(health, logger, check_type)
                )
            else:
                await _send_endpoint(send, endpoints.restore_healthy(health, logger))
        else:
            await _send_response(send, 404, "text/plain", "Not Found")

    return app
