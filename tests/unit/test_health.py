"""Tests for the health check registry."""

import asyncio
import time
from datetime import datetime

import pytest

from admin_telemetry.core.health import TIMEOUT_MESSAGE, HealthRegistry
from admin_telemetry.core.models import Status


async def _healthy() -> bool:
    return True


async def _unhealthy() -> bool:
    return False


async def _never_resolves() -> bool:
    await asyncio.sleep(10)
    return True


class TestRegistration:
    """Tests for register_liveness() and register_readiness()."""

    @pytest.mark.core
    def test_registered_names_are_listed(self, health: HealthRegistry) -> None:
        health.register_liveness("memory", _healthy)
        health.register_liveness("app", _healthy)
        health.register_readiness("database", _healthy)
        assert health.liveness_checks == ["app", "memory"]
        assert health.readiness_checks == ["database"]

    @pytest.mark.core
    async def test_reregistering_replaces_probe(self, health: HealthRegistry) -> None:
        """The old probe is never called again after re-registration."""
        calls: list[str] = []

        async def old() -> bool:
            calls.append("old")
            return False

        async def new() -> bool:
            calls.append("new")
            return True

        health.register_liveness("app", old)
        health.register_liveness("app", new)
        status = await health.check_liveness()

        assert calls == ["new"]
        assert status.status == Status.HEALTHY
        assert health.liveness_checks == ["app"]

    @pytest.mark.core
    async def test_categories_are_independent(self, health: HealthRegistry) -> None:
        health.register_liveness("shared", _healthy)
        health.register_readiness("shared", _unhealthy)
        assert (await health.check_liveness()).healthy
        assert not (await health.check_readiness()).healthy

    @pytest.mark.core
    def test_registration_is_logged(self, health: HealthRegistry, log_stream) -> None:
        health.register_readiness("database", _healthy, timeout_ms=2000)
        (record,) = log_stream.records()
        assert record["message"] == "Readiness check registered"
        assert record["context"] == {"checkName": "database", "timeout": 2000}


class TestRunChecks:
    """Tests for check_liveness() and check_readiness()."""

    @pytest.mark.core
    async def test_mixed_results_are_unhealthy(self, health: HealthRegistry) -> None:
        health.register_liveness("app", _healthy)
        health.register_liveness("flaky", _unhealthy)

        status = await health.check_liveness()

        assert status.status == Status.UNHEALTHY
        assert status.checks["app"].status == Status.HEALTHY
        assert status.checks["flaky"].status == Status.UNHEALTHY
        assert status.checks["flaky"].message is None

    @pytest.mark.core
    async def test_all_passing_is_healthy(self, health: HealthRegistry) -> None:
        health.register_readiness("database", _healthy)
        health.register_readiness("cache", _healthy)
        status = await health.check_readiness()
        assert status.healthy
        assert set(status.checks) == {"database", "cache"}

    @pytest.mark.core
    async def test_empty_category_is_healthy(self, health: HealthRegistry) -> None:
        status = await health.check_readiness()
        assert status.healthy
        assert status.checks == {}

    @pytest.mark.core
    async def test_timeout_marks_check_unhealthy(self, health: HealthRegistry) -> None:
        health.register_liveness("slow", _never_resolves, timeout_ms=100)

        start = time.perf_counter()
        status = await health.check_liveness()
        elapsed = time.perf_counter() - start

        result = status.checks["slow"]
        assert result.status == Status.UNHEALTHY
        assert result.message == TIMEOUT_MESSAGE == "Check timeout"
        assert 90 <= result.duration_ms < 1000
        assert elapsed < 1.0

    @pytest.mark.core
    async def test_batch_bounded_by_longest_timeout(self, health: HealthRegistry) -> None:
        """Probes run concurrently, so hanging probes do not add up."""
        for name in ("a", "b", "c", "d"):
            health.register_readiness(name, _never_resolves, timeout_ms=200)

        start = time.perf_counter()
        status = await health.check_readiness()
        elapsed = time.perf_counter() - start

        assert elapsed < 0.6
        assert all(r.message == "Check timeout" for r in status.checks.values())

    @pytest.mark.core
    async def test_exception_is_recorded_not_raised(self, health: HealthRegistry) -> None:
        async def broken() -> bool:
            raise ConnectionError("connection refused")

        health.register_readiness("database", broken)
        health.register_readiness("cache", _healthy)

        status = await health.check_readiness()

        assert status.status == Status.UNHEALTHY
        assert status.checks["database"].message == "connection refused"
        assert status.checks["cache"].status == Status.HEALTHY

    @pytest.mark.core
    async def test_exception_without_message_uses_class_name(
        self, health: HealthRegistry
    ) -> None:
        async def broken() -> bool:
            raise RuntimeError

        health.register_liveness("app", broken)
        status = await health.check_liveness()
        assert status.checks["app"].message == "RuntimeError"

    @pytest.mark.core
    async def test_sync_probe_is_supported(self, health: HealthRegistry) -> None:
        health.register_liveness("sync-ok", lambda: True)
        health.register_liveness("sync-bad", lambda: 1 / 0)
        status = await health.check_liveness()
        assert status.checks["sync-ok"].status == Status.HEALTHY
        assert status.checks["sync-bad"].message == "division by zero"

    @pytest.mark.core
    async def test_blocking_sync_probe_times_out(self, health: HealthRegistry) -> None:
        def slow() -> bool:
            time.sleep(0.5)
            return True

        health.register_liveness("slow", slow, timeout_ms=100)

        start = time.perf_counter()
        status = await health.check_liveness()
        elapsed = time.perf_counter() - start

        result = status.checks["slow"]
        assert result.status == Status.UNHEALTHY
        assert result.message == "Check timeout"
        assert result.duration_ms < 400
        assert elapsed < 0.4

    @pytest.mark.core
    async def test_blocking_sync_probe_does_not_delay_others(
        self, health: HealthRegistry
    ) -> None:
        finished: list[str] = []

        def slow() -> bool:
            time.sleep(0.3)
            finished.append("slow")
            return True

        async def fast() -> bool:
            finished.append("fast")
            return True

        health.register_readiness("slow", slow)
        health.register_readiness("fast", fast)

        status = await health.check_readiness()

        assert status.healthy
        assert finished == ["fast", "slow"]
        assert status.checks["fast"].duration_ms < status.checks["slow"].duration_ms

    @pytest.mark.core
    async def test_results_are_not_cached(self, health: HealthRegistry) -> None:
        outcomes = iter([True, False])

        async def flips() -> bool:
            return next(outcomes)

        health.register_liveness("flips", flips)
        assert (await health.check_liveness()).healthy
        assert not (await health.check_liveness()).healthy

    @pytest.mark.core
    async def test_to_dict_shape(self, health: HealthRegistry) -> None:
        health.register_liveness("app", _healthy)
        health.register_liveness("flaky", _unhealthy)

        body = (await health.check_liveness()).to_dict()

        assert body["status"] == "unhealthy"
        datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))
        assert body["checks"]["app"]["status"] == "healthy"
        assert isinstance(body["checks"]["app"]["durationMs"], int)
        assert "message" not in body["checks"]["app"]

    @pytest.mark.core
    async def test_failure_is_logged(self, health: HealthRegistry, log_stream) -> None:
        health.register_liveness("slow", _never_resolves, timeout_ms=50)
        await health.check_liveness()
        failures = [r for r in log_stream.records() if r["level"] == "error"]
        assert failures[0]["message"] == "Health check failed"
        assert failures[0]["context"]["checkName"] == "slow"
        assert failures[0]["context"]["error"] == "Check timeout"

    @pytest.mark.core
    async def test_registry_without_logger(self) -> None:
        health = HealthRegistry()
        health.register_liveness("app", _healthy)
        assert (await health.check_liveness()).healthy
