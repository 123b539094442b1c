"""Alpha Vantage API client for market data.

This module provides an async client for the Alpha Vantage query API
with support for quotes, company overviews, intraday series and top
movers. Every request passes through an IntervalRateLimiter so the
free-tier quota is never exceeded. Failures are raised as typed errors;
callers decide how to degrade.
"""

import os
from typing import Any

import httpx
import structlog

from stockpulse.data.models import ChartPoint, CompanyOverview, MarketMovers, Quote
from stockpulse.data.parsing import (
    MARKET_MOVERS_LISTS,
    parse_market_movers,
    parse_overview,
    parse_quote,
    parse_time_series,
)
from stockpulse.resilience.rate_limiter import IntervalRateLimiter

logger = structlog.get_logger(__name__)

VALID_INTERVALS = ("1min", "5min", "15min", "30min", "60min")


class AlphaVantageError(Exception):
    """Base exception for Alpha Vantage API errors."""

    pass


class AlphaVantageAuthError(AlphaVantageError):
    """Raised when the API key is missing."""

    pass


class AlphaVantageRateLimitError(AlphaVantageError):
    """Raised when the provider reports its request quota is exhausted."""

    def __init__(self, message: str = "Alpha Vantage API rate limit exceeded"):
        super().__init__(message)


class AlphaVantageAPIError(AlphaVantageError):
    """Raised for provider-reported errors and transport failures."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"Alpha Vantage API error {status}: {message}")


class AlphaVantageEmptyResponse(AlphaVantageError):
    """Raised when a response lacks the expected data block."""

    pass


class AlphaVantageClient:
    """Async client for the Alpha Vantage query API.

    Provides methods to fetch:
    - Global quotes
    - Company overviews
    - Intraday OHLCV series
    - Top gainers, losers and most actively traded tickers

    Example:
        client = AlphaVantageClient(api_key="demo")
        quote = await client.get_quote("AAPL")
        print(f"AAPL: ${quote.price}")
    """

    BASE_URL = "https://www.alphavantage.co/query"
    USER_AGENT = "StockPulse-Pro/1.0.0"

    def __init__(
        self,
        api_key: str | None = None,
        limiter: IntervalRateLimiter | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Alpha Vantage client.

        Args:
            api_key: Alpha Vantage API key. If not provided, reads from
                ALPHA_VANTAGE_API_KEY environment variable.
            limiter: Rate limiter gating every request. Defaults to one
                call per 12 seconds.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.api_key = api_key or os.environ.get("ALPHA_VANTAGE_API_KEY")
        self.limiter = limiter or IntervalRateLimiter(interval=12.0)
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._logger = logger.bind(component="alpha_vantage_client")

    @property
    def is_configured(self) -> bool:
        """Check if API key is configured."""
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.USER_AGENT},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, function: str, **params: Any) -> dict[str, Any]:
        """Make a rate-limited request to the query API.

        Args:
            function: Alpha Vantage function name (e.g., "GLOBAL_QUOTE").
            params: Additional query parameters.

        Returns:
            JSON response data.

        Raises:
            AlphaVantageAuthError: If API key is missing.
            AlphaVantageRateLimitError: If the quota notice is returned.
            AlphaVantageAPIError: For error payloads and transport failures.
        """
        if not self.api_key:
            raise AlphaVantageAuthError("ALPHA_VANTAGE_API_KEY not configured")

        client = await self._get_client()
        query = {"function": function, **params, "apikey": self.api_key}

        await self.limiter.acquire()
        self._logger.debug("alpha_vantage_request", function=function, symbol=params.get("symbol"))

        try:
            response = await client.get(self.BASE_URL, params=query)
        except httpx.TimeoutException as e:
            self._logger.error("alpha_vantage_timeout", function=function, error=str(e))
            raise AlphaVantageAPIError(0, f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            self._logger.error("alpha_vantage_client_error", function=function, error=str(e))
            raise AlphaVantageAPIError(0, str(e)) from e

        if response.status_code != 200:
            self._logger.error(
                "alpha_vantage_http_error",
                function=function,
                status=response.status_code,
            )
            raise AlphaVantageAPIError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise AlphaVantageAPIError(response.status_code, "Response is not valid JSON") from e

        if not isinstance(data, dict):
            raise AlphaVantageEmptyResponse(f"Unexpected payload type for {function}")

        self._check_payload(data)
        self._logger.debug("alpha_vantage_response", function=function, status=response.status_code)
        return data

    @staticmethod
    def _check_payload(data: dict[str, Any]) -> None:
        """Raise for error and quota notices embedded in a 200 response."""
        if "Error Message" in data:
            raise AlphaVantageAPIError(200, str(data["Error Message"]))

        if "Note" in data:
            raise AlphaVantageRateLimitError(str(data["Note"]))

        information = str(data.get("Information", ""))
        lowered = information.lower()
        if "rate limit" in lowered or "call frequency" in lowered:
            raise AlphaVantageRateLimitError(information)

    async def get_quote(self, symbol: str) -> Quote:
        """Get the latest quote for a symbol.

        Uses the GLOBAL_QUOTE function.

        Args:
            symbol: Stock ticker symbol (e.g., "AAPL").

        Returns:
            Quote with provider-reported price and change values.

        Raises:
            AlphaVantageError: If the request fails or returns no quote.
        """
        symbol = symbol.upper()
        data = await self._request("GLOBAL_QUOTE", symbol=symbol)

        quote = data.get("Global Quote")
        if not isinstance(quote, dict) or not quote:
            raise AlphaVantageEmptyResponse(f"No quote data available for symbol: {symbol}")

        return parse_quote(symbol, quote)

    async def get_overview(self, symbol: str) -> CompanyOverview:
        """Get company description and fundamentals.

        Uses the OVERVIEW function.

        Args:
            symbol: Stock ticker symbol.

        Returns:
            CompanyOverview with numeric fields defaulted to 0.
        """
        symbol = symbol.upper()
        data = await self._request("OVERVIEW", symbol=symbol)

        if not data.get("Symbol"):
            raise AlphaVantageEmptyResponse(f"No overview data available for symbol: {symbol}")

        return parse_overview(symbol, data)

    async def get_intraday(self, symbol: str, interval: str = "5min") -> list[ChartPoint]:
        """Get an intraday OHLCV series.

        Uses the TIME_SERIES_INTRADAY function with compact output.

        Args:
            symbol: Stock ticker symbol.
            interval: Bar interval (1min, 5min, 15min, 30min, 60min).

        Returns:
            Chart points sorted most recent first.
        """
        symbol = symbol.upper()
        data = await self._request(
            "TIME_SERIES_INTRADAY",
            symbol=symbol,
            interval=interval,
            outputsize="compact",
        )

        series = data.get(f"Time Series ({interval})")
        if not isinstance(series, dict) or not series:
            raise AlphaVantageEmptyResponse(f"No intraday data available for symbol: {symbol}")

        points = parse_time_series(series)
        if not points:
            raise AlphaVantageEmptyResponse(f"No valid intraday bars for symbol: {symbol}")
        return points

    async def get_top_movers(self) -> MarketMovers:
        """Get top gainers, losers and most actively traded tickers.

        Uses the TOP_GAINERS_LOSERS function.

        Returns:
            MarketMovers with at most 10 entries per list.
        """
        data = await self._request("TOP_GAINERS_LOSERS")

        for key in MARKET_MOVERS_LISTS.values():
            if not isinstance(data.get(key), list):
                raise AlphaVantageEmptyResponse("Invalid market movers data format")

        return parse_market_movers(data)

    async def __aenter__(self) -> "AlphaVantageClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
