"""Liveness and readiness check registry."""

import asyncio
import inspect
import time

from admin_telemetry.core.logs import StructuredLogger
from admin_telemetry.core.models import (
    DEFAULT_CHECK_TIMEOUT_MS,
    CheckResult,
    HealthCheck,
    HealthStatus,
    Probe,
    Status,
    utc_timestamp,
)

TIMEOUT_MESSAGE = "Check timeout"


async def _call_probe(probe: Probe) -> bool:
    """Await a coroutine probe; run any other callable in a worker thread.

    A blocking sync probe thus never stalls the event loop, and its
    timeout fires on schedule. The thread itself cannot be interrupted and
    finishes in the background.
    """
    if inspect.iscoroutinefunction(probe):
        result = await probe()
    else:
        result = await asyncio.to_thread(probe)
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)


class HealthRegistry:
    """Named liveness and readiness checks.

    Registering a name that already exists in a category replaces the
    previous check; the old probe is never called again. Each call to
    check_liveness() or check_readiness() runs the current checks of that
    category concurrently and builds a fresh HealthStatus.
    """

    def __init__(self, logger: StructuredLogger | None = None) -> None:
        self._logger = logger
        self._liveness: dict[str, HealthCheck] = {}
        self._readiness: dict[str, HealthCheck] = {}

    @property
    def liveness_checks(self) -> list[str]:
        return sorted(self._liveness)

    @property
    def readiness_checks(self) -> list[str]:
        return sorted(self._readiness)

    def register_liveness(
        self, name: str, probe: Probe, timeout_ms: int = DEFAULT_CHECK_TIMEOUT_MS
    ) -> None:
        """Add or replace a liveness check.

        Args:
            name: Check name, unique among liveness checks.
            probe: Callable returning a bool or an awaitable bool.
            timeout_ms: Time the probe may take before it counts as failed.
        """
        self._liveness[name] = HealthCheck(name, probe, timeout_ms)
        if self._logger is not None:
            self._logger.info(
                "Liveness check registered", {"checkName": name, "timeout": timeout_ms}
            )

    def register_readiness(
        self, name: str, probe: Probe, timeout_ms: int = DEFAULT_CHECK_TIMEOUT_MS
    ) -> None:
        """Add or replace a readiness check.

        Args:
            name: Check name, unique among readiness checks.
            probe: Callable returning a bool or an awaitable bool.
            timeout_ms: Time the probe may take before it counts as failed.
        """
        self._readiness[name] = HealthCheck(name, probe, timeout_ms)
        if self._logger is not None:
            self._logger.info(
                "Readiness check registered", {"checkName": name, "timeout": timeout_ms}
            )

    async def check_liveness(self) -> HealthStatus:
        if self._logger is not None:
            self._logger.debug(
                "Running liveness checks", {"checkCount": len(self._liveness)}
            )
        return await self._run_checks(self._liveness)

    async def check_readiness(self) -> HealthStatus:
        if self._logger is not None:
            self._logger.debug(
                "Running readiness checks", {"checkCount": len(self._readiness)}
            )
        return await self._run_checks(self._readiness)

    async def _run_checks(self, checks: dict[str, HealthCheck]) -> HealthStatus:
        """Run a category's checks concurrently and aggregate the outcome.

        The category is copied first, so registrations made while checks
        are running take effect on the next call.
        """
        batch = list(checks.values())
        results = await asyncio.gather(*(self._run_check(check) for check in batch))
        by_name = {check.name: result for check, result in zip(batch, results)}
        overall = (
            Status.UNHEALTHY
            if any(r.status == Status.UNHEALTHY for r in results)
            else Status.HEALTHY
        )
        return HealthStatus(status=overall, timestamp=utc_timestamp(), checks=by_name)

    async def _run_check(self, check: HealthCheck) -> CheckResult:
        """Run one probe against its timeout; never raises.

        A probe that outlives its timeout is cancelled.
        """
        start = time.perf_counter()
        try:
            healthy = await asyncio.wait_for(
                _call_probe(check.probe), timeout=check.timeout_ms / 1000
            )
        except TimeoutError:
            return self._failed(check, TIMEOUT_MESSAGE, _elapsed_ms(start))
        except Exception as e:
            return self._failed(check, str(e) or type(e).__name__, _elapsed_ms(start))

        duration = _elapsed_ms(start)
        status = Status.HEALTHY if healthy else Status.UNHEALTHY
        if self._logger is not None:
            self._logger.debug(
                "Health check completed",
                {"checkName": check.name, "status": str(status), "duration": duration},
            )
        return CheckResult(status=status, duration_ms=duration)

    def _failed(self, check: HealthCheck, message: str, duration: int) -> CheckResult:
        if self._logger is not None:
            self._logger.error(
                "Health check failed",
                {"checkName": check.name, "error": message, "duration": duration},
            )
        return CheckResult(status=Status.UNHEALTHY, duration_ms=duration, message=message)
