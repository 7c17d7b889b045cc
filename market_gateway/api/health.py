"""Liveness and readiness probes.

Liveness only says the process answers. Readiness runs every registered
component probe concurrently, each under its own timeout; the gateway is
ready only when all of them pass.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class ServiceStatus(Enum):
    READY = "ready"
    NOT_READY = "not_ready"


@dataclass
class ComponentCheck:
    """Outcome of probing one component."""

    name: str
    ok: bool
    latency_ms: float
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "status": "ok" if self.ok else "unhealthy",
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.error:
            body["error"] = self.error
        if self.details:
            body["details"] = self.details
        return body


class HealthChecker:
    """A named component probe.

    Subclasses implement ``probe``, returning details on success and
    raising on failure. ``check`` turns either outcome, or a timeout, into
    a ComponentCheck.
    """

    def __init__(self, name: str, timeout: float = 1.0) -> None:
        self.name = name
        self.timeout = timeout

    async def probe(self) -> dict[str, Any]:
        raise NotImplementedError

    async def check(self) -> ComponentCheck:
        started = time.monotonic()
        details: dict[str, Any] = {}
        error: str | None = None
        try:
            details = await asyncio.wait_for(self.probe(), timeout=self.timeout)
        except TimeoutError:
            error = f"Timeout after {self.timeout}s"
        except Exception as e:
            error = str(e) or type(e).__name__

        return ComponentCheck(
            name=self.name,
            ok=error is None,
            latency_ms=(time.monotonic() - started) * 1000,
            error=error,
            details=details,
        )


class CacheHealthChecker(HealthChecker):
    """Pings the store behind a CacheManager."""

    def __init__(self, cache: Any, timeout: float = 1.0) -> None:
        super().__init__("cache", timeout)
        self.cache = cache

    async def probe(self) -> dict[str, Any]:
        if not await self.cache.ping():
            raise ConnectionError("Ping failed")
        return {"backend": type(self.cache.store).__name__}


@dataclass
class HealthCheckResult:
    status: ServiceStatus
    checks: dict[str, dict[str, Any]]
    version: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "checks": self.checks,
            "timestamp": self.timestamp.isoformat(),
            "version": self.version,
        }


class HealthService:
    """Holds the component probes behind /health/ready."""

    def __init__(self, version: str = "1.0.0") -> None:
        self.version = version
        self._checkers: dict[str, HealthChecker] = {}

    def register_checker(self, checker: HealthChecker) -> None:
        """Add a probe; a probe with the same name is replaced."""
        self._checkers[checker.name] = checker

    async def liveness(self) -> dict[str, Any]:
        return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}

    async def readiness(self) -> HealthCheckResult:
        results = await asyncio.gather(*(c.check() for c in self._checkers.values()))
        ready = all(r.ok for r in results)
        status = ServiceStatus.READY if ready else ServiceStatus.NOT_READY

        if not ready:
            logger.warning(
                "readiness_failed",
                failing=[r.name for r in results if not r.ok],
            )
        return HealthCheckResult(
            status=status,
            checks={r.name: r.to_dict() for r in results},
            version=self.version,
        )


_health_service: HealthService | None = None


def get_health_service() -> HealthService | None:
    return _health_service


def set_health_service(service: HealthService) -> None:
    global _health_service
    _health_service = service


def reset_health_service() -> None:
    """Forget the registered health service (for testing)."""
    global _health_service
    _health_service = None
