"""Built-in health probes for the admin dashboard."""

from collections.abc import Awaitable, Callable

import aiosqlite
import psutil


def always_healthy() -> Callable[[], Awaitable[bool]]:
    """Probe for the ``app`` liveness check: the event loop can run it."""

    async def probe() -> bool:
        return True

    return probe


def fixed_probe(result: bool) -> Callable[[], Awaitable[bool]]:
    """Probe that always reports result; used to force a check's outcome."""

    async def probe() -> bool:
        return result

    return probe


def memory_probe(max_percent: float = 95.0) -> Callable[[], Awaitable[bool]]:
    """Probe for the ``memory`` liveness check.

    Args:
        max_percent: System memory usage, in percent, above which the
            process is reported unhealthy.
    """

    async def probe() -> bool:
        return psutil.virtual_memory().percent <= max_percent

    return probe


def sqlite_probe(db_path: str) -> Callable[[], Awaitable[bool]]:
    """Probe for the ``database`` readiness check.

    Opens the existing database read-write and runs ``SELECT 1``. A missing
    file is an error rather than being created. Connection errors propagate
    so that the check result carries their message.

    Args:
        db_path: Path to the SQLite database file.
    """
    uri = f"file:{db_path}?mode=rw"

    async def probe() -> bool:
        async with aiosqlite.connect(uri, uri=True) as db:
            async with db.execute("SELECT 1") as cursor:
                row = await cursor.fetchone()
        return row is not None and row[0] == 1

    return probe
