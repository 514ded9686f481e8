"""
Dependency health checks for MDB_USERS.

A check is an async callable returning a HealthCheckResult. HealthChecker
runs the registered checks concurrently, each under its own timeout, and
reports the service as healthy only when every check is.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pymongo.errors import PyMongoError

from ..constants import DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

HealthCheck = Callable[[], Awaitable["HealthCheckResult"]]


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheckResult:
    status: HealthStatus
    message: str
    details: dict[str, Any] | None = None

    @classmethod
    def unhealthy(cls, message: str) -> "HealthCheckResult":
        return cls(HealthStatus.UNHEALTHY, message)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class HealthChecker:
    """
    Named checks folded into one status.

    Example:
        checker = HealthChecker(timeout=5)
        checker.register("mongodb", lambda: ping_mongodb(store.client))
        report = await checker.run()
        # {"status": "healthy", "checks": {"mongodb": {"status": "healthy", ...}}}
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self._timeout = timeout
        self._checks: dict[str, HealthCheck] = {}

    def register(self, name: str, check: HealthCheck) -> None:
        self._checks[name] = check

    async def _run_one(self, name: str, check: HealthCheck) -> HealthCheckResult:
        try:
            return await asyncio.wait_for(check(), timeout=self._timeout)
        except asyncio.TimeoutError:
            return HealthCheckResult.unhealthy(f"timed out after {self._timeout}s")
        except (PyMongoError, RuntimeError, OSError) as e:
            logger.warning(f"Health check '{name}' failed: {e}")
            return HealthCheckResult.unhealthy(f"{type(e).__name__}: {e}")

    async def run(self) -> dict[str, Any]:
        names = list(self._checks)
        results = await asyncio.gather(
            *(self._run_one(name, self._checks[name]) for name in names)
        )
        healthy = all(r.status is HealthStatus.HEALTHY for r in results)
        return {
            "status": (HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY).value,
            "checks": {name: result.to_dict() for name, result in zip(names, results)},
        }


async def ping_mongodb(client: Any | None) -> HealthCheckResult:
    """Ping the server through ``client``; pymongo errors propagate to the checker."""
    if client is None:
        return HealthCheckResult.unhealthy("MongoDB client not initialized")
    await client.admin.command("ping")
    return HealthCheckResult(HealthStatus.HEALTHY, "MongoDB connection is healthy")


async def check_store(store: Any | None) -> HealthCheckResult:
    """Report whether the DocumentStore is connected, with its pool settings."""
    if store is None or not store.connected:
        return HealthCheckResult.unhealthy("Document store not connected")
    return HealthCheckResult(
        HealthStatus.HEALTHY,
        "Document store is connected",
        details={
            "db_name": store.db_name,
            "pool_size": f"{store.min_pool_size}-{store.max_pool_size}",
        },
    )
