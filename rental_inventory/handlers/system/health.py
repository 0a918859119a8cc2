"""Health check endpoint for production monitoring.

Used by container health checks, deployment scripts, and load balancers.
Checks PostgreSQL and the Redis lock service; either one failing makes
writes impossible, so the engine reports unhealthy (503) in that case.
"""

import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from rental_inventory.api.dependencies import get_engine
from rental_inventory.engine import InventoryEngine
from rental_inventory.logging import get_logger, redact_credentials

logger = get_logger(__name__)

# Track application start time for uptime calculation
_start_time: float = time.time()

# Application version from environment or default
APP_VERSION: str = os.environ.get("APP_VERSION", "0.0.0-dev")

router = APIRouter(tags=["monitoring"])


@dataclass
class DependencyHealth:
    """Health status for a single dependency."""

    status: str  # "healthy" or "unhealthy"
    response_time_ms: int | None = None
    error: str | None = None


@dataclass
class HealthCheckResult:
    """Complete health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    uptime_seconds: int
    timestamp: str
    dependencies: dict[str, DependencyHealth] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        result: dict[str, Any] = {
            "status": self.status,
            "version": self.version,
            "uptime_seconds": self.uptime_seconds,
            "timestamp": self.timestamp,
            "dependencies": {},
        }

        for name, dep in self.dependencies.items():
            dep_dict: dict[str, Any] = {"status": dep.status}
            if dep.response_time_ms is not None:
                dep_dict["response_time_ms"] = dep.response_time_ms
            if dep.error:
                dep_dict["error"] = dep.error
            result["dependencies"][name] = dep_dict

        if self.errors:
            result["errors"] = self.errors

        return result


async def check_dependency(name: str, check: Callable[[], Awaitable[Any]]) -> DependencyHealth:
    """Time a connectivity check.

    Args:
        name: Dependency name for logging
        check: Coroutine factory that raises on failure

    Returns:
        DependencyHealth with status and response time
    """
    start = time.perf_counter()
    try:
        await check()
        response_time = int((time.perf_counter() - start) * 1000)
        return DependencyHealth(status="healthy", response_time_ms=response_time)
    except Exception as e:
        error = redact_credentials(str(e))[:100]
        logger.error("health_check_failed", dependency=name, error=error)
        return DependencyHealth(status="unhealthy", error=f"Connection failed: {error}")


async def perform_health_check(db: Any, lock_helper: Any) -> HealthCheckResult:
    """Perform health check of PostgreSQL and Redis.

    Args:
        db: Database exposing ping()
        lock_helper: Lock helper exposing ping()

    Returns:
        HealthCheckResult with overall status and dependency details
    """
    result = HealthCheckResult(
        status="healthy",
        version=APP_VERSION,
        uptime_seconds=int(time.time() - _start_time),
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )

    result.dependencies["postgres"] = await check_dependency("postgres", db.ping)
    result.dependencies["redis"] = await check_dependency("redis", lock_helper.ping)

    unhealthy_deps = [
        name for name, dep in result.dependencies.items() if dep.status == "unhealthy"
    ]
    if unhealthy_deps:
        result.status = "unhealthy"
        result.errors = [f"Critical: {dep} connection failed" for dep in unhealthy_deps]

    return result


def get_http_status_code(health_status: str) -> int:
    """Get HTTP status code for health status.

    Args:
        health_status: "healthy" or "unhealthy"

    Returns:
        HTTP status code (200 or 503)
    """
    if health_status == "unhealthy":
        return 503
    return 200


@router.get("/health")
async def health(engine: InventoryEngine = Depends(get_engine)) -> JSONResponse:
    result = await perform_health_check(engine.db, engine.lock_helper)
    return JSONResponse(
        status_code=get_http_status_code(result.status),
        content=result.to_dict(),
        headers={"Cache-Control": "no-cache"},
    )


def reset_start_time() -> None:
    """Reset start time for testing purposes."""
    global _start_time
    _start_time = time.time()
