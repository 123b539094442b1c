"""Market data layer.

This module contains:
- AlphaVantageClient: rate-limited provider client
- MarketDataService: provider access with mock fallback
- MockDataGenerator: synthetic market data
- Pydantic models for quotes, overviews, chart points and movers
"""

from stockpulse.data.alpha_vantage import (
    VALID_INTERVALS,
    AlphaVantageAPIError,
    AlphaVantageAuthError,
    AlphaVantageClient,
    AlphaVantageEmptyResponse,
    AlphaVantageError,
    AlphaVantageRateLimitError,
)
from stockpulse.data.market import MarketDataService
from stockpulse.data.mock import MockDataGenerator
from stockpulse.data.models import (
    ChartPoint,
    CompanyOverview,
    DataSource,
    MarketMover,
    MarketMovers,
    Quote,
)

__all__ = [
    # Client
    "AlphaVantageClient",
    "VALID_INTERVALS",
    # Errors
    "AlphaVantageAPIError",
    "AlphaVantageAuthError",
    "AlphaVantageEmptyResponse",
    "AlphaVantageError",
    "AlphaVantageRateLimitError",
    # Services
    "MarketDataService",
    "MockDataGenerator",
    # Models
    "ChartPoint",
    "CompanyOverview",
    "DataSource",
    "MarketMover",
    "MarketMovers",
    "Quote",
]
