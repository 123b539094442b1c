"""Data models for market data.

This module defines the Pydantic models returned by the market data
service, whether the values came from Alpha Vantage or the mock
generator. JSON field names are camelCase to match the dashboard.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MARKET_MOVERS_LIMIT = 10


class DataSource(str, Enum):
    """Source of a value served by the API."""

    ALPHA_VANTAGE = "alpha_vantage"
    MOCK = "mock"
    TEXT_MODEL = "text_model"
    KEYWORD_FALLBACK = "keyword_fallback"
    TEMPLATE = "template"


class ApiModel(BaseModel):
    """Base model serializing snake_case attributes as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class Quote(ApiModel):
    """Latest quote for a symbol.

    Attributes:
        symbol: Uppercase ticker symbol.
        price: Last traded price.
        change: Change from previous close.
        change_percent: Percentage change from previous close.
        volume: Trading volume.
        open: Opening price.
        high: Day high.
        low: Day low.
        previous_close: Previous session close.
        timestamp: When the quote was retrieved.
    """

    symbol: str
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: int = Field(default=0, ge=0)
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    previous_close: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class CompanyOverview(ApiModel):
    """Company description and fundamentals.

    Numeric fields default to 0 and string fields to "" so consumers never
    see missing values.
    """

    symbol: str
    name: str = ""
    description: str = ""
    sector: str = ""
    industry: str = ""
    market_cap: float = 0.0
    pe_ratio: float = 0.0
    peg_ratio: float = 0.0
    book_value: float = 0.0
    dividend_per_share: float = 0.0
    dividend_yield: float = 0.0
    eps: float = 0.0
    revenue_per_share_ttm: float = 0.0
    profit_margin: float = 0.0
    operating_margin_ttm: float = 0.0
    return_on_assets_ttm: float = 0.0
    return_on_equity_ttm: float = 0.0
    revenue_ttm: float = 0.0
    gross_profit_ttm: float = 0.0
    diluted_eps_ttm: float = 0.0
    quarterly_earnings_growth_yoy: float = 0.0
    quarterly_revenue_growth_yoy: float = 0.0
    analyst_target_price: float = 0.0
    trailing_pe: float = 0.0
    forward_pe: float = 0.0
    price_to_sales_ratio_ttm: float = 0.0
    price_to_book_ratio: float = 0.0
    ev_to_revenue: float = 0.0
    ev_to_ebitda: float = 0.0
    beta: float = 0.0
    week52_high: float = 0.0
    week52_low: float = 0.0
    day50_moving_average: float = 0.0
    day200_moving_average: float = 0.0
    shares_outstanding: float = 0.0
    shares_float: float = 0.0
    shares_short: float = 0.0
    shares_short_prior_month: float = 0.0
    short_ratio: float = 0.0
    short_percent_outstanding: float = 0.0
    short_percent_float: float = 0.0
    percent_insiders: float = 0.0
    percent_institutions: float = 0.0
    forward_annual_dividend_rate: float = 0.0
    forward_annual_dividend_yield: float = 0.0
    payout_ratio: float = 0.0
    dividend_date: str = ""
    ex_dividend_date: str = ""
    last_split_factor: str = ""
    last_split_date: str = ""


class ChartPoint(ApiModel):
    """One OHLCV bar of an intraday series."""

    timestamp: str
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(default=0, ge=0)


class MarketMover(ApiModel):
    """Simplified quote for a top gainer, loser or most traded ticker."""

    ticker: str
    price: float = 0.0
    change_amount: float = 0.0
    change_percentage: float = 0.0
    volume: int = Field(default=0, ge=0)


class MarketMovers(ApiModel):
    """Top movers snapshot, each list bounded to MARKET_MOVERS_LIMIT entries."""

    gainers: list[MarketMover] = Field(default_factory=list, max_length=MARKET_MOVERS_LIMIT)
    losers: list[MarketMover] = Field(default_factory=list, max_length=MARKET_MOVERS_LIMIT)
    most_active: list[MarketMover] = Field(default_factory=list, max_length=MARKET_MOVERS_LIMIT)
