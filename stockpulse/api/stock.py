"""Stock market data endpoints.

- GET /api/stock/market/movers: top gainers, losers and most active
- GET /api/stock/{symbol}: quote, overview and intraday chart
- GET /api/stock/{symbol}/chart/{interval}: intraday chart only

Responses are cached; provider failures surface as a `note` on mock data.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter

from stockpulse.api.dependencies import Container
from stockpulse.api.errors import ApiError
from stockpulse.cache.manager import CacheKeyBuilder, CacheType
from stockpulse.data.alpha_vantage import VALID_INTERVALS
from stockpulse.resilience.degradation import DegradedResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/stock", tags=["Stock"])

MAX_SYMBOL_LENGTH = 10


def validate_symbol(symbol: str) -> str:
    """Normalize a path symbol, rejecting empty or overlong values."""
    symbol = symbol.strip().upper()
    if not symbol or len(symbol) > MAX_SYMBOL_LENGTH:
        raise ApiError(400, "Invalid stock symbol", "Symbol must be 1-10 characters long")
    return symbol


def describe_sources(*responses: DegradedResponse[Any]) -> dict[str, Any]:
    """Summarize where a set of values came from.

    Returns:
        {"source": ...} plus a "note" when any value is a fallback.
    """
    degraded = [r for r in responses if r.is_degraded()]
    source = degraded[0].source if degraded else responses[0].source
    summary: dict[str, Any] = {"source": source}

    notes = list(dict.fromkeys(note for r in degraded if (note := r.note)))
    if notes:
        summary["note"] = "; ".join(notes)
    return summary


def _with_envelope(payload: dict[str, Any], cached: bool) -> dict[str, Any]:
    return {**payload, "cached": cached, "timestamp": datetime.now(UTC).isoformat()}


@router.get("/market/movers")
async def get_market_movers(container: Container) -> dict[str, Any]:
    """Top gainers, losers and most actively traded tickers."""
    cache_key = CacheKeyBuilder.market_movers()
    cached = container.cache.get(cache_key)
    if cached is not None:
        return _with_envelope(cached, cached=True)

    response = await container.market.get_top_movers()
    payload = {**response.result.to_json_dict(), **describe_sources(response)}

    container.cache.set(cache_key, payload, cache_type=CacheType.MARKET_MOVERS)
    return _with_envelope(payload, cached=False)


@router.get("/{symbol}")
async def get_stock(symbol: str, container: Container) -> dict[str, Any]:
    """Quote, company overview and 5-minute intraday chart for a symbol."""
    symbol = validate_symbol(symbol)
    cache_key = CacheKeyBuilder.stock(symbol)
    cached = container.cache.get(cache_key)
    if cached is not None:
        return _with_envelope(cached, cached=True)

    quote, overview, chart = await asyncio.gather(
        container.market.get_quote(symbol),
        container.market.get_overview(symbol),
        container.market.get_intraday(symbol, "5min"),
    )

    quote_data = quote.result.to_json_dict()
    payload = {
        "symbol": symbol,
        "price": quote_data["price"],
        "change": quote_data["change"],
        "changePercent": quote_data["changePercent"],
        "quote": quote_data,
        "overview": overview.result.to_json_dict(),
        "chartData": [point.to_json_dict() for point in chart.result],
        **describe_sources(quote, overview, chart),
    }

    container.cache.set(cache_key, payload, cache_type=CacheType.STOCK)
    logger.info("stock_served", symbol=symbol, source=payload["source"])
    return _with_envelope(payload, cached=False)


@router.get("/{symbol}/chart/{interval}")
async def get_chart(symbol: str, interval: str, container: Container) -> dict[str, Any]:
    """Intraday chart for a symbol at the given bar interval."""
    symbol = validate_symbol(symbol)
    if interval not in VALID_INTERVALS:
        raise ApiError(
            400,
            "Invalid interval",
            f"Interval must be one of: {', '.join(VALID_INTERVALS)}",
        )

    cache_key = CacheKeyBuilder.chart(symbol, interval)
    cached = container.cache.get(cache_key)
    if cached is not None:
        return _with_envelope(cached, cached=True)

    response = await container.market.get_intraday(symbol, interval)
    payload = {
        "symbol": symbol,
        "interval": interval,
        "data": [point.to_json_dict() for point in response.result],
        **describe_sources(response),
    }

    container.cache.set(cache_key, payload, cache_type=CacheType.CHART)
    return _with_envelope(payload, cached=False)
