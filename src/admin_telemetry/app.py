"""Composition root: builds the registries and the FastAPI application.

One Telemetry bundle is created per process and handed to the route
layer explicitly; nothing in admin_telemetry keeps module-level state.
"""

import logging
from dataclasses import dataclass

from fastapi import FastAPI

from admin_telemetry.adapters.frameworks.asgi import ASGIObservabilityMiddleware
from admin_telemetry.adapters.frameworks.fastapi import create_health_router
from admin_telemetry.adapters.logging import StructuredLogHandler
from admin_telemetry.config import TelemetryConfig, load_config
from admin_telemetry.core.health import HealthRegistry
from admin_telemetry.core.logs import StructuredLogger
from admin_telemetry.core.metrics import MetricsRegistry
from admin_telemetry.probes import always_healthy, memory_probe, sqlite_probe

# Probe endpoints are scraped constantly; keep them out of request metrics.
DEFAULT_EXCLUDE_PATHS = ["/healthz", "/readyz", "/metrics"]


@dataclass
class Telemetry:
    """The per-process logger, metrics registry and health registry."""

    config: TelemetryConfig
    logger: StructuredLogger
    metrics: MetricsRegistry
    health: HealthRegistry


def register_default_checks(telemetry: Telemetry) -> None:
    """Register the dashboard's standard probes.

    Liveness: ``app`` and ``memory``. Readiness: ``database`` when a
    database path is configured.
    """
    config = telemetry.config
    health = telemetry.health
    health.register_liveness("app", always_healthy(), config.check_timeout_ms)
    health.register_liveness(
        "memory", memory_probe(config.memory_max_percent), config.check_timeout_ms
    )
    if config.database_path:
        health.register_readiness(
            "database", sqlite_probe(config.database_path), config.check_timeout_ms
        )
    telemetry.logger.info(
        "Health checks registered",
        {
            "livenessChecks": health.liveness_checks,
            "readinessChecks": health.readiness_checks,
        },
    )


def build_telemetry(
    config: TelemetryConfig | None = None, register_defaults: bool = True
) -> Telemetry:
    """Create the registries for one process.

    Args:
        config: Settings; read from the environment when omitted.
        register_defaults: Register the standard probes.

    Returns:
        The Telemetry bundle.
    """
    config = config or load_config()
    logger = StructuredLogger(config.service_name, level=config.log_level)
    telemetry = Telemetry(
        config=config,
        logger=logger,
        metrics=MetricsRegistry(),
        health=HealthRegistry(logger),
    )
    if register_defaults:
        register_default_checks(telemetry)
    return telemetry


def install_log_bridge(logger: StructuredLogger, level: int = logging.INFO) -> StructuredLogHandler:
    """Route stdlib logging through the structured logger.

    Replaces the root logger's handlers with a StructuredLogHandler.
    """
    handler = StructuredLogHandler(logger, level)
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    return handler


def create_app(telemetry: Telemetry | None = None) -> FastAPI:
    """Create the FastAPI application serving the probe endpoints.

    Args:
        telemetry: Registries to serve; built from the environment when
            omitted.

    Returns:
        FastAPI app with the health router mounted and every other request
        recorded by ASGIObservabilityMiddleware.
    """
    telemetry = telemetry or build_telemetry()
    app = FastAPI(title="Admin Health Server")
    app.include_router(
        create_health_router(
            telemetry.health,
            telemetry.metrics,
            telemetry.logger,
            fault_injection=telemetry.config.enable_fault_injection,
        )
    )
    app.add_middleware(
        ASGIObservabilityMiddleware,
        metrics=telemetry.metrics,
        logger=telemetry.logger,
        exclude_paths=DEFAULT_EXCLUDE_PATHS,
    )
    app.state.telemetry = telemetry
    return app
