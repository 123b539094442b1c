"""Service container and FastAPI dependencies.

Every long-lived object (cache, provider clients, limiters) is built once
per application by ServiceContainer.from_settings() and stored on
app.state. Routes reach it through the get_container dependency, so tests
can swap any piece by passing their own container to create_app().
"""

from dataclasses import dataclass, field
from typing import Annotated

import structlog
from fastapi import Depends, Request

from stockpulse.api.health import HealthService, create_health_service
from stockpulse.cache.manager import TTLCache
from stockpulse.config import Settings
from stockpulse.data.alpha_vantage import AlphaVantageClient
from stockpulse.data.market import MarketDataService
from stockpulse.news.service import NewsService
from stockpulse.resilience.degradation import DegradationManager
from stockpulse.resilience.rate_limiter import (
    ClientRateLimiter,
    IntervalRateLimiter,
    RateLimitConfig,
)
from stockpulse.sentiment.analyzer import SentimentAnalyzer

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    """Long-lived services shared by all requests of one application.

    Attributes:
        settings: Application settings.
        cache: Response cache.
        degradation: Provider health tracker.
        market: Market data service.
        analyzer: Sentiment analyzer and text model client.
        news: News generation service.
        rate_limiter: Inbound per-client limiter, or None when disabled.
        health: Readiness checks.
    """

    settings: Settings
    cache: TTLCache
    degradation: DegradationManager
    market: MarketDataService
    analyzer: SentimentAnalyzer
    news: NewsService
    rate_limiter: ClientRateLimiter | None = None
    health: HealthService = field(default_factory=HealthService)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceContainer":
        """Build all services from settings.

        Args:
            settings: Application settings.

        Returns:
            Fully wired ServiceContainer.
        """
        degradation = DegradationManager()
        cache = TTLCache(
            default_ttl=settings.CACHE_DEFAULT_TTL,
            stats_interval=settings.CACHE_STATS_INTERVAL,
        )
        client = AlphaVantageClient(
            api_key=settings.ALPHA_VANTAGE_API_KEY,
            limiter=IntervalRateLimiter(interval=settings.MARKET_DATA_INTERVAL_SECONDS),
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        market = MarketDataService(client=client, degradation=degradation)
        analyzer = SentimentAnalyzer(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.TEXT_MODEL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            degradation=degradation,
        )
        rate_limiter = None
        if settings.API_RATE_LIMIT_ENABLED:
            rate_limiter = ClientRateLimiter(
                RateLimitConfig(
                    max_requests=settings.API_RATE_LIMIT_MAX_REQUESTS,
                    window_seconds=settings.API_RATE_LIMIT_WINDOW_SECONDS,
                )
            )

        container = cls(
            settings=settings,
            cache=cache,
            degradation=degradation,
            market=market,
            analyzer=analyzer,
            news=NewsService(analyzer),
            rate_limiter=rate_limiter,
        )
        container.health = create_health_service(container)
        return container

    async def close(self) -> None:
        """Stop background work and close provider clients."""
        await self.cache.stop_stats_logging()
        await self.market.close()
        await self.analyzer.close()
        logger.info("services_closed")


def get_container(request: Request) -> ServiceContainer:
    """Get the ServiceContainer of the current application."""
    container: ServiceContainer = request.app.state.container
    return container


Container = Annotated[ServiceContainer, Depends(get_container)]
