"""Market data service with mock fallback.

This module provides MarketDataService, which fronts the Alpha Vantage
client and folds every provider failure (missing key, quota notice,
error payload, timeout, empty response) into synthetic data from
MockDataGenerator. Callers always get a value back, wrapped in a
DegradedResponse that says where it came from.
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from stockpulse.data.alpha_vantage import AlphaVantageClient, AlphaVantageRateLimitError
from stockpulse.data.mock import MockDataGenerator
from stockpulse.data.models import ChartPoint, CompanyOverview, DataSource, MarketMovers, Quote
from stockpulse.data.parsing import sort_chart_points
from stockpulse.resilience.degradation import (
    ComponentType,
    DegradationLevel,
    DegradationManager,
    DegradedResponse,
    with_fallback,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

MOCK_DATA_NOTE = "Live market data unavailable; showing simulated data"


class MarketDataService:
    """Serves market data from Alpha Vantage, degrading to mock data.

    Handles:
    - Rate-limited provider access (through the client's limiter)
    - Automatic mock fallback on any provider error
    - Provider health reporting to the DegradationManager
    - Per-source counters

    Example:
        service = MarketDataService(AlphaVantageClient(api_key="demo"))
        response = await service.get_quote("AAPL")
        print(f"Price: {response.result.price} (source: {response.source})")
    """

    def __init__(
        self,
        client: AlphaVantageClient | None = None,
        mock: MockDataGenerator | None = None,
        degradation: DegradationManager | None = None,
    ) -> None:
        """Initialize the market data service.

        Args:
            client: Alpha Vantage client instance.
            mock: Generator used for fallback values.
            degradation: Manager recording provider health.
        """
        self._client = client or AlphaVantageClient()
        self._mock = mock or MockDataGenerator()
        self._degradation = degradation or DegradationManager()
        self._logger = logger.bind(component="market_data_service")

        self._stats = {
            "alpha_vantage_success": 0,
            "alpha_vantage_rate_limited": 0,
            "mock_fallback": 0,
        }

    @property
    def client(self) -> AlphaVantageClient:
        """Underlying provider client."""
        return self._client

    @property
    def degradation(self) -> DegradationManager:
        """Degradation manager receiving provider health updates."""
        return self._degradation

    @property
    def stats(self) -> dict[str, int]:
        """Get fallback statistics."""
        return self._stats.copy()

    def reset_stats(self) -> None:
        """Reset fallback statistics."""
        for key in self._stats:
            self._stats[key] = 0

    async def _fetch(
        self,
        operation: str,
        symbol: str | None,
        primary: Callable[[], Awaitable[T]],
        fallback: Callable[[], T],
    ) -> DegradedResponse[T]:
        """Run a provider call through the fallback combinator and count the outcome."""

        async def call_provider() -> T:
            try:
                return await primary()
            except AlphaVantageRateLimitError:
                self._stats["alpha_vantage_rate_limited"] += 1
                raise

        response = await with_fallback(
            call_provider,
            fallback,
            component=ComponentType.MARKET_DATA_API,
            level=DegradationLevel.MOCK_DATA,
            primary_source=DataSource.ALPHA_VANTAGE.value,
            fallback_source=DataSource.MOCK.value,
            note=MOCK_DATA_NOTE,
            manager=self._degradation,
        )

        if response.is_degraded():
            self._stats["mock_fallback"] += 1
        else:
            self._stats["alpha_vantage_success"] += 1

        self._logger.info(
            "market_data_fetched",
            operation=operation,
            symbol=symbol,
            source=response.source,
        )
        return response

    async def get_quote(self, symbol: str) -> DegradedResponse[Quote]:
        """Get the latest quote for a symbol.

        Args:
            symbol: Stock ticker symbol.

        Returns:
            DegradedResponse with a live or simulated quote.
        """
        symbol = symbol.upper()
        return await self._fetch(
            "quote",
            symbol,
            lambda: self._client.get_quote(symbol),
            lambda: self._mock.quote(symbol),
        )

    async def get_overview(self, symbol: str) -> DegradedResponse[CompanyOverview]:
        """Get company overview and fundamentals."""
        symbol = symbol.upper()
        return await self._fetch(
            "overview",
            symbol,
            lambda: self._client.get_overview(symbol),
            lambda: self._mock.overview(symbol),
        )

    async def get_intraday(
        self,
        symbol: str,
        interval: str = "5min",
    ) -> DegradedResponse[list[ChartPoint]]:
        """Get an intraday series.

        Args:
            symbol: Stock ticker symbol.
            interval: Bar interval (1min, 5min, 15min, 30min, 60min).

        Returns:
            DegradedResponse with chart points, most recent first.
        """
        symbol = symbol.upper()
        response = await self._fetch(
            "intraday",
            symbol,
            lambda: self._client.get_intraday(symbol, interval),
            lambda: self._mock.intraday(symbol, interval),
        )
        response.result = sort_chart_points(response.result)
        return response

    async def get_top_movers(self) -> DegradedResponse[MarketMovers]:
        """Get top gainers, losers and most actively traded tickers."""
        return await self._fetch(
            "top_movers",
            None,
            self._client.get_top_movers,
            self._mock.top_movers,
        )

    async def close(self) -> None:
        """Close underlying clients."""
        await self._client.close()
