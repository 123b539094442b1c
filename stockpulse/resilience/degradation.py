"""Graceful degradation for provider outages.

This module provides:
- Degradation levels describing where a value came from
- Component status tracking for the market data and text model providers
- DegradedResponse, the result type every provider-backed call returns
- with_fallback, the combinator folding provider failures into synthetic values

Provider faults never propagate to callers: a failed primary call is
logged, the component is marked unhealthy, and the fallback value is
returned wrapped with its degradation level and a user-facing note.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class DegradationLevel(Enum):
    """Degradation levels from best to worst service quality."""

    FULL = "full"  # Live provider data
    KEYWORD_FALLBACK = "keyword_fallback"  # Local sentiment classifier
    TEMPLATE_DATA = "template_data"  # Canned news articles
    MOCK_DATA = "mock_data"  # Synthetic market data

    def is_degraded(self) -> bool:
        """Check if this level represents degraded service."""
        return self != DegradationLevel.FULL


class ComponentType(Enum):
    """Types of components that can fail."""

    MARKET_DATA_API = "market_data_api"
    TEXT_MODEL = "text_model"


class ComponentHealth(Enum):
    """Health status of a component."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class ComponentStatus:
    """Status of a single component.

    Attributes:
        component: Type of component.
        health: Current health status.
        last_check: Timestamp of last status change.
        last_healthy: Timestamp when last healthy.
        failure_count: Consecutive failure count.
        error_message: Last error message if unhealthy.
    """

    component: ComponentType
    health: ComponentHealth = ComponentHealth.UNKNOWN
    last_check: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_healthy: datetime | None = None
    failure_count: int = 0
    error_message: str | None = None

    def mark_healthy(self) -> None:
        """Mark component as healthy."""
        self.health = ComponentHealth.HEALTHY
        self.last_check = datetime.now(UTC)
        self.last_healthy = self.last_check
        self.failure_count = 0
        self.error_message = None

    def mark_unhealthy(self, error: str | None = None) -> None:
        """Mark component as unhealthy."""
        self.health = ComponentHealth.UNHEALTHY
        self.last_check = datetime.now(UTC)
        self.failure_count += 1
        self.error_message = error

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "component": self.component.value,
            "health": self.health.value,
            "last_check": self.last_check.isoformat(),
            "last_healthy": self.last_healthy.isoformat() if self.last_healthy else None,
            "failure_count": self.failure_count,
            "error_message": self.error_message,
        }


@dataclass
class DegradedResponse(Generic[T]):
    """Response wrapper that includes degradation information.

    Attributes:
        result: The actual value, live or synthetic.
        degradation_level: How the value was produced.
        source: Name of the source that produced the value.
        warnings: User-facing notes about degraded state.
        timestamp: When the response was generated.
    """

    result: T
    degradation_level: DegradationLevel = DegradationLevel.FULL
    source: str = "primary"
    warnings: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def is_degraded(self) -> bool:
        """Check if response is degraded."""
        return self.degradation_level.is_degraded()

    @property
    def note(self) -> str | None:
        """Joined warnings, or None when the response is not degraded."""
        if not self.warnings:
            return None
        return "; ".join(self.warnings)


class DegradationManager:
    """Tracks provider health as calls succeed or fall back.

    Example:
        manager = DegradationManager()
        await manager.mark_unhealthy(ComponentType.MARKET_DATA_API, "quota")

        manager.get_component_status(ComponentType.MARKET_DATA_API).failure_count
    """

    def __init__(self) -> None:
        """Initialize degradation manager with all components unknown."""
        self._components: dict[ComponentType, ComponentStatus] = {
            comp: ComponentStatus(component=comp) for comp in ComponentType
        }
        self._fallback_counts: dict[DegradationLevel, int] = dict.fromkeys(DegradationLevel, 0)
        self._lock = asyncio.Lock()

    async def mark_healthy(self, component: ComponentType) -> None:
        """Mark a component as healthy.

        Args:
            component: Component type to mark healthy.
        """
        async with self._lock:
            self._components[component].mark_healthy()
            self._fallback_counts[DegradationLevel.FULL] += 1

        logger.debug("component_healthy", component=component.value)

    async def mark_unhealthy(
        self,
        component: ComponentType,
        error: str | None = None,
        level: DegradationLevel = DegradationLevel.MOCK_DATA,
    ) -> None:
        """Mark a component as unhealthy.

        Args:
            component: Component type to mark unhealthy.
            error: Error message describing the failure.
            level: Degradation level served instead.
        """
        async with self._lock:
            self._components[component].mark_unhealthy(error)
            self._fallback_counts[level] += 1

        logger.warning(
            "component_unhealthy",
            component=component.value,
            error=error,
            failure_count=self._components[component].failure_count,
        )

    def get_component_status(self, component: ComponentType) -> ComponentStatus:
        """Get status of a specific component."""
        return self._components[component]

    def get_failed_components(self) -> set[ComponentType]:
        """Get set of components whose last call failed."""
        return {
            comp
            for comp, status in self._components.items()
            if status.health == ComponentHealth.UNHEALTHY
        }

    def get_health_summary(self) -> dict[str, Any]:
        """Get a summary of provider health.

        Returns:
            Dictionary with per-component status and response counts.
        """
        failed = self.get_failed_components()
        return {
            "is_degraded": bool(failed),
            "components": {
                comp.value: status.to_dict() for comp, status in self._components.items()
            },
            "failed_components": sorted(c.value for c in failed),
            "responses_by_level": {k.value: v for k, v in self._fallback_counts.items()},
        }


async def with_fallback(
    primary: Callable[[], Awaitable[T]],
    fallback: Callable[[], T],
    *,
    component: ComponentType,
    level: DegradationLevel = DegradationLevel.MOCK_DATA,
    primary_source: str = "primary",
    fallback_source: str = "fallback",
    note: str = "Live data unavailable; showing fallback data",
    manager: DegradationManager | None = None,
) -> DegradedResponse[T]:
    """Run a provider call, folding any failure into a fallback value.

    Args:
        primary: Zero-argument coroutine function calling the provider.
        fallback: Synchronous function building the substitute value.
        component: Component the primary call depends on.
        level: Degradation level reported when the fallback is used.
        primary_source: Source name reported on success.
        fallback_source: Source name reported on fallback.
        note: Warning attached to fallback responses.
        manager: Optional degradation manager to record health on.

    Returns:
        DegradedResponse holding either the live or the fallback value.

    Example:
        response = await with_fallback(
            lambda: client.get_quote("AAPL"),
            lambda: mock.quote("AAPL"),
            component=ComponentType.MARKET_DATA_API,
        )
    """
    try:
        result = await primary()
    except Exception as e:
        logger.warning(
            "fallback_activated",
            component=component.value,
            error_type=type(e).__name__,
            error=str(e),
            level=level.value,
        )
        if manager is not None:
            await manager.mark_unhealthy(component, str(e), level)

        return DegradedResponse(
            result=fallback(),
            degradation_level=level,
            source=fallback_source,
            warnings=[note],
        )

    if manager is not None:
        await manager.mark_healthy(component)

    return DegradedResponse(result=result, source=primary_source)
