"""Health checks for monitoring and orchestration.

This module provides:
- Liveness: basic check that the service is running
- Readiness: component checks for the market data provider, the text
  model and the cache

Provider problems report as degraded rather than unhealthy: the service
keeps answering from mock data, keyword classification and templates.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from stockpulse import __version__
from stockpulse.cache.manager import TTLCache
from stockpulse.data.market import MarketDataService
from stockpulse.resilience.degradation import (
    ComponentHealth,
    ComponentStatus,
    ComponentType,
    DegradationManager,
)
from stockpulse.sentiment.analyzer import SentimentAnalyzer

if TYPE_CHECKING:
    from stockpulse.api.dependencies import ServiceContainer

logger = structlog.get_logger(__name__)


class HealthStatus(Enum):
    """Health status values."""

    OK = "ok"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ServiceStatus(Enum):
    """Overall service status."""

    READY = "ready"
    DEGRADED = "degraded"
    NOT_READY = "not_ready"


@dataclass
class ComponentCheck:
    """Result of a component health check.

    Attributes:
        name: Component name.
        status: Health status.
        latency_ms: Check latency in milliseconds.
        error: Error message if not OK.
        details: Additional details.
    """

    name: str
    status: HealthStatus
    latency_ms: float = 0.0
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.error:
            result["error"] = self.error
        if self.details:
            result["details"] = self.details
        return result


class HealthChecker:
    """Base class for component health checkers."""

    def __init__(self, name: str, timeout: float = 5.0) -> None:
        """Initialize health checker.

        Args:
            name: Component name.
            timeout: Check timeout in seconds.
        """
        self.name = name
        self.timeout = timeout

    async def check(self) -> ComponentCheck:
        """Run health check with timeout and latency tracking."""
        start = time.monotonic()
        try:
            result = await asyncio.wait_for(self._do_check(), timeout=self.timeout)
            result.latency_ms = (time.monotonic() - start) * 1000
            return result
        except TimeoutError:
            return ComponentCheck(
                name=self.name,
                status=HealthStatus.UNHEALTHY,
                latency_ms=(time.monotonic() - start) * 1000,
                error=f"Timeout after {self.timeout}s",
            )
        except Exception as e:
            return ComponentCheck(
                name=self.name,
                status=HealthStatus.UNHEALTHY,
                latency_ms=(time.monotonic() - start) * 1000,
                error=str(e),
            )

    async def _do_check(self) -> ComponentCheck:
        """Implement the actual health check."""
        raise NotImplementedError


def _provider_check(
    name: str,
    configured: bool,
    status: ComponentStatus,
    fallback: str,
    details: dict[str, Any],
) -> ComponentCheck:
    """Build a check result from configuration and last-call health."""
    details = {
        "configured": configured,
        "failure_count": status.failure_count,
        "health": status.health.value,
        **details,
    }
    if not configured:
        return ComponentCheck(
            name=name,
            status=HealthStatus.DEGRADED,
            error=f"API key not configured; serving {fallback}",
            details=details,
        )
    if status.health == ComponentHealth.UNHEALTHY:
        return ComponentCheck(
            name=name,
            status=HealthStatus.DEGRADED,
            error=status.error_message,
            details=details,
        )
    return ComponentCheck(name=name, status=HealthStatus.OK, details=details)


class MarketDataHealthChecker(HealthChecker):
    """Health checker for the market data provider.

    Reads configuration and the outcome of the most recent call instead
    of probing, since every provider request spends quota.
    """

    def __init__(self, market: MarketDataService, timeout: float = 5.0) -> None:
        super().__init__("market_data", timeout)
        self.market = market

    async def _do_check(self) -> ComponentCheck:
        status = self.market.degradation.get_component_status(ComponentType.MARKET_DATA_API)
        return _provider_check(
            self.name,
            self.market.client.is_configured,
            status,
            "mock data",
            {
                "pending_requests": self.market.client.limiter.pending_requests,
                "stats": self.market.stats,
            },
        )


class TextModelHealthChecker(HealthChecker):
    """Health checker for the text model."""

    def __init__(self, analyzer: SentimentAnalyzer, timeout: float = 10.0) -> None:
        super().__init__("text_model", timeout)
        self.analyzer = analyzer

    async def _do_check(self) -> ComponentCheck:
        status = self.analyzer.degradation.get_component_status(ComponentType.TEXT_MODEL)
        return _provider_check(
            self.name,
            self.analyzer.is_configured,
            status,
            "keyword sentiment and template news",
            {"model": self.analyzer.model},
        )


class CacheHealthChecker(HealthChecker):
    """Health checker for the in-memory cache."""

    def __init__(self, cache: TTLCache, timeout: float = 1.0) -> None:
        super().__init__("cache", timeout)
        self.cache = cache

    async def _do_check(self) -> ComponentCheck:
        return ComponentCheck(name=self.name, status=HealthStatus.OK, details=self.cache.stats())


@dataclass
class HealthCheckResult:
    """Result of full health check.

    Attributes:
        status: Overall service status.
        checks: Individual component checks.
        timestamp: When the check was performed.
        version: Service version.
        degradation: Provider health summary, if tracked.
    """

    status: ServiceStatus
    checks: dict[str, dict[str, Any]]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    version: str = __version__
    degradation: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "status": self.status.value,
            "checks": self.checks,
            "timestamp": self.timestamp.isoformat(),
            "version": self.version,
        }
        if self.degradation is not None:
            data["degradation"] = self.degradation
        return data


class HealthService:
    """Service for running health checks.

    Example:
        service = HealthService()
        service.register_checker(CacheHealthChecker(cache))

        result = await service.readiness()
    """

    def __init__(
        self,
        version: str = __version__,
        degradation: DegradationManager | None = None,
    ) -> None:
        """Initialize health service.

        Args:
            version: Service version to include in responses.
            degradation: Manager whose summary is added to readiness results.
        """
        self.version = version
        self.degradation = degradation
        self._checkers: list[HealthChecker] = []

    def register_checker(self, checker: HealthChecker) -> None:
        """Register a health checker."""
        self._checkers.append(checker)
        logger.debug("health_checker_registered", name=checker.name)

    async def readiness(self) -> HealthCheckResult:
        """Full readiness check.

        Checks all registered components in parallel.

        Returns:
            Comprehensive health check result.
        """
        results = await asyncio.gather(*(c.check() for c in self._checkers))

        checks = {result.name: result.to_dict() for result in results}
        statuses = {result.status for result in results}

        if HealthStatus.UNHEALTHY in statuses:
            status = ServiceStatus.NOT_READY
        elif HealthStatus.DEGRADED in statuses:
            status = ServiceStatus.DEGRADED
        else:
            status = ServiceStatus.READY

        logger.info("health_check_completed", status=status.value, checks_count=len(checks))

        summary = self.degradation.get_health_summary() if self.degradation else None
        return HealthCheckResult(
            status=status, checks=checks, version=self.version, degradation=summary
        )


def create_health_service(
    container: "ServiceContainer", version: str = __version__
) -> HealthService:
    """Create a health service checking every component of a container.

    Args:
        container: Services to check.
        version: Service version.

    Returns:
        Configured HealthService.
    """
    service = HealthService(version=version, degradation=container.degradation)
    service.register_checker(MarketDataHealthChecker(container.market))
    service.register_checker(TextModelHealthChecker(container.analyzer))
    service.register_checker(CacheHealthChecker(container.cache))
    return service
