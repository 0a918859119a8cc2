"""Unit tests for health check endpoint."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from rental_inventory.handlers.system.health import (
    APP_VERSION,
    DependencyHealth,
    HealthCheckResult,
    check_dependency,
    get_http_status_code,
    perform_health_check,
    reset_start_time,
)


class TestDependencyHealth:
    """Tests for DependencyHealth dataclass."""

    def test_healthy_dependency(self):
        """Test creating a healthy dependency status."""
        dep = DependencyHealth(status="healthy", response_time_ms=15)

        assert dep.status == "healthy"
        assert dep.response_time_ms == 15
        assert dep.error is None


class TestHealthCheckResult:
    """Tests for HealthCheckResult dataclass."""

    def test_healthy_result_to_dict(self):
        """Test converting healthy result to dictionary."""
        result = HealthCheckResult(
            status="healthy",
            version="0.1.0",
            uptime_seconds=3600,
            timestamp="2026-06-01T10:30:00Z",
            dependencies={
                "postgres": DependencyHealth(status="healthy", response_time_ms=15),
                "redis": DependencyHealth(status="healthy", response_time_ms=3),
            },
        )

        data = result.to_dict()

        assert data["status"] == "healthy"
        assert data["uptime_seconds"] == 3600
        assert data["dependencies"]["postgres"]["response_time_ms"] == 15
        assert data["dependencies"]["redis"]["status"] == "healthy"
        assert "errors" not in data

    def test_unhealthy_result_to_dict(self):
        """Test converting unhealthy result to dictionary."""
        result = HealthCheckResult(
            status="unhealthy",
            version="0.1.0",
            uptime_seconds=120,
            timestamp="2026-06-01T10:30:00Z",
            dependencies={
                "postgres": DependencyHealth(status="healthy", response_time_ms=4),
                "redis": DependencyHealth(status="unhealthy", error="ECONNREFUSED"),
            },
            errors=["Critical: redis connection failed"],
        )

        data = result.to_dict()

        assert data["dependencies"]["redis"]["error"] == "ECONNREFUSED"
        assert "response_time_ms" not in data["dependencies"]["redis"]
        assert data["errors"] == ["Critical: redis connection failed"]


class TestCheckDependency:
    """Tests for single dependency checks."""

    @pytest.mark.asyncio
    async def test_dependency_healthy(self):
        check = AsyncMock(return_value=True)

        result = await check_dependency("redis", check)

        assert result.status == "healthy"
        assert result.response_time_ms >= 0
        check.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_dependency_failure_redacts_credentials(self):
        check = AsyncMock(
            side_effect=OSError("could not connect to postgresql://app:secret@db/inventory")
        )

        result = await check_dependency("postgres", check)

        assert result.status == "unhealthy"
        assert result.response_time_ms is None
        assert "secret" not in result.error
        assert result.error.startswith("Connection failed")


class TestPerformHealthCheck:
    """Tests for comprehensive health check."""

    @pytest.mark.asyncio
    async def test_all_healthy(self):
        """Test health check when all dependencies are healthy."""
        reset_start_time()
        db = MagicMock()
        db.ping = AsyncMock()
        lock_helper = MagicMock()
        lock_helper.ping = AsyncMock(return_value=True)

        result = await perform_health_check(db, lock_helper)

        assert result.status == "healthy"
        assert result.version == APP_VERSION
        assert result.uptime_seconds >= 0
        assert result.timestamp.endswith("Z")
        assert set(result.dependencies) == {"postgres", "redis"}

    @pytest.mark.asyncio
    async def test_any_dependency_down_is_unhealthy(self):
        """Writes need both stores, so one failure is enough."""
        db = MagicMock()
        db.ping = AsyncMock()
        lock_helper = MagicMock()
        lock_helper.ping = AsyncMock(side_effect=ConnectionError("ECONNREFUSED"))

        result = await perform_health_check(db, lock_helper)

        assert result.status == "unhealthy"
        assert result.errors == ["Critical: redis connection failed"]


def test_http_status_codes():
    assert get_http_status_code("healthy") == 200
    assert get_http_status_code("unhealthy") == 503
