"""Alpha Vantage payload parsing.

All knowledge of Alpha Vantage field names lives here. Each parser maps
provider keys onto the canonical models through an explicit table and
coerces numeric-looking strings, turning anything unparseable into 0.
"""

import math
from datetime import UTC, datetime
from typing import Any

from stockpulse.data.models import (
    MARKET_MOVERS_LIMIT,
    ChartPoint,
    CompanyOverview,
    MarketMover,
    MarketMovers,
    Quote,
)

# Quote field -> GLOBAL_QUOTE key
QUOTE_FIELDS: dict[str, str] = {
    "open": "02. open",
    "high": "03. high",
    "low": "04. low",
    "price": "05. price",
    "previous_close": "08. previous close",
    "change": "09. change",
    "change_percent": "10. change percent",
}

# CompanyOverview numeric field -> OVERVIEW key
OVERVIEW_NUMERIC_FIELDS: dict[str, str] = {
    "market_cap": "MarketCapitalization",
    "pe_ratio": "PERatio",
    "peg_ratio": "PEGRatio",
    "book_value": "BookValue",
    "dividend_per_share": "DividendPerShare",
    "dividend_yield": "DividendYield",
    "eps": "EPS",
    "revenue_per_share_ttm": "RevenuePerShareTTM",
    "profit_margin": "ProfitMargin",
    "operating_margin_ttm": "OperatingMarginTTM",
    "return_on_assets_ttm": "ReturnOnAssetsTTM",
    "return_on_equity_ttm": "ReturnOnEquityTTM",
    "revenue_ttm": "RevenueTTM",
    "gross_profit_ttm": "GrossProfitTTM",
    "diluted_eps_ttm": "DilutedEPSTTM",
    "quarterly_earnings_growth_yoy": "QuarterlyEarningsGrowthYOY",
    "quarterly_revenue_growth_yoy": "QuarterlyRevenueGrowthYOY",
    "analyst_target_price": "AnalystTargetPrice",
    "trailing_pe": "TrailingPE",
    "forward_pe": "ForwardPE",
    "price_to_sales_ratio_ttm": "PriceToSalesRatioTTM",
    "price_to_book_ratio": "PriceToBookRatio",
    "ev_to_revenue": "EVToRevenue",
    "ev_to_ebitda": "EVToEBITDA",
    "beta": "Beta",
    "week52_high": "52WeekHigh",
    "week52_low": "52WeekLow",
    "day50_moving_average": "50DayMovingAverage",
    "day200_moving_average": "200DayMovingAverage",
    "shares_outstanding": "SharesOutstanding",
    "shares_float": "SharesFloat",
    "shares_short": "SharesShort",
    "shares_short_prior_month": "SharesShortPriorMonth",
    "short_ratio": "ShortRatio",
    "short_percent_outstanding": "ShortPercentOutstanding",
    "short_percent_float": "ShortPercentFloat",
    "percent_insiders": "PercentInsiders",
    "percent_institutions": "PercentInstitutions",
    "forward_annual_dividend_rate": "ForwardAnnualDividendRate",
    "forward_annual_dividend_yield": "ForwardAnnualDividendYield",
    "payout_ratio": "PayoutRatio",
}

# CompanyOverview string field -> OVERVIEW key
OVERVIEW_TEXT_FIELDS: dict[str, str] = {
    "name": "Name",
    "description": "Description",
    "sector": "Sector",
    "industry": "Industry",
    "dividend_date": "DividendDate",
    "ex_dividend_date": "ExDividendDate",
    "last_split_factor": "LastSplitFactor",
    "last_split_date": "LastSplitDate",
}

# ChartPoint field -> time series bar key
CHART_POINT_FIELDS: dict[str, str] = {
    "open": "1. open",
    "high": "2. high",
    "low": "3. low",
    "close": "4. close",
}

# MarketMover field -> TOP_GAINERS_LOSERS entry key
MARKET_MOVER_FIELDS: dict[str, str] = {
    "price": "price",
    "change_amount": "change_amount",
    "change_percentage": "change_percentage",
}

# MarketMovers field -> TOP_GAINERS_LOSERS list key
MARKET_MOVERS_LISTS: dict[str, str] = {
    "gainers": "top_gainers",
    "losers": "top_losers",
    "most_active": "most_actively_traded",
}


def to_float(value: Any) -> float:
    """Coerce a provider value to float, returning 0.0 on failure.

    Strings may carry a trailing percent sign and thousands separators;
    "None", "-", empty strings, NaN and infinities all read as 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().rstrip("%").replace(",", "")
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_int(value: Any) -> int:
    """Coerce a provider value to a non-negative int, returning 0 on failure."""
    return max(0, int(to_float(value)))


def to_text(value: Any) -> str:
    """Coerce a provider value to a string; None becomes ""."""
    if value is None:
        return ""
    return str(value)


def parse_quote(symbol: str, payload: dict[str, Any]) -> Quote:
    """Build a Quote from a GLOBAL_QUOTE "Global Quote" block.

    Args:
        symbol: Requested symbol, used when the block lacks one.
        payload: The "Global Quote" mapping.

    Returns:
        Quote with provider-reported change values.
    """
    values = {field: to_float(payload.get(key)) for field, key in QUOTE_FIELDS.items()}
    return Quote(
        symbol=to_text(payload.get("01. symbol")).upper() or symbol.upper(),
        volume=to_int(payload.get("06. volume")),
        **values,
    )


def parse_overview(symbol: str, payload: dict[str, Any]) -> CompanyOverview:
    """Build a CompanyOverview from an OVERVIEW payload."""
    numbers = {field: to_float(payload.get(key)) for field, key in OVERVIEW_NUMERIC_FIELDS.items()}
    texts = {field: to_text(payload.get(key)) for field, key in OVERVIEW_TEXT_FIELDS.items()}
    return CompanyOverview(
        symbol=to_text(payload.get("Symbol")).upper() or symbol.upper(),
        **numbers,
        **texts,
    )


def _timestamp_sort_key(timestamp: str) -> tuple[int, Any]:
    """Sort key that orders parseable timestamps chronologically."""
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return (0, timestamp)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return (1, parsed)


def sort_chart_points(points: list[ChartPoint]) -> list[ChartPoint]:
    """Order chart points by timestamp, most recent first."""
    return sorted(points, key=lambda p: _timestamp_sort_key(p.timestamp), reverse=True)


def parse_time_series(series: dict[str, dict[str, Any]]) -> list[ChartPoint]:
    """Build chart points from a "Time Series (<interval>)" block.

    Args:
        series: Mapping of timestamp to bar values.

    Returns:
        Chart points sorted most recent first.
    """
    points = [
        ChartPoint(
            timestamp=timestamp,
            volume=to_int(bar.get("5. volume")),
            **{field: to_float(bar.get(key)) for field, key in CHART_POINT_FIELDS.items()},
        )
        for timestamp, bar in series.items()
        if isinstance(bar, dict)
    ]
    return sort_chart_points(points)


def parse_market_mover(entry: dict[str, Any]) -> MarketMover:
    """Build a MarketMover from one TOP_GAINERS_LOSERS entry."""
    return MarketMover(
        ticker=to_text(entry.get("ticker")).upper(),
        volume=to_int(entry.get("volume")),
        **{field: to_float(entry.get(key)) for field, key in MARKET_MOVER_FIELDS.items()},
    )


def parse_market_movers(payload: dict[str, Any]) -> MarketMovers:
    """Build MarketMovers from a TOP_GAINERS_LOSERS payload, keeping the top N of each list."""
    lists = {
        field: [
            parse_market_mover(entry)
            for entry in payload.get(key, [])[:MARKET_MOVERS_LIMIT]
            if isinstance(entry, dict)
        ]
        for field, key in MARKET_MOVERS_LISTS.items()
    }
    return MarketMovers(**lists)
