"""Synthetic market data used when the provider is unavailable.

Values are plausible but not realistic: prices jitter around a small
baseline table, fundamentals are drawn from bounded ranges, and intraday
bars random-walk around the base price. Every generated value satisfies
the model invariants (positive prices, non-negative volume, non-empty
descriptive strings).
"""

import random
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from stockpulse.data.models import (
    MARKET_MOVERS_LIMIT,
    ChartPoint,
    CompanyOverview,
    MarketMover,
    MarketMovers,
    Quote,
)


@dataclass(frozen=True)
class StockProfile:
    """Baseline values a mock stock jitters around."""

    symbol: str
    name: str
    price: float
    volume: int
    market_cap: float
    sector: str
    industry: str


BASELINE_STOCKS: dict[str, StockProfile] = {
    "AAPL": StockProfile(
        "AAPL", "Apple Inc.", 178.45, 48_392_847, 2.8e12, "Technology", "Consumer Electronics"
    ),
    "GOOGL": StockProfile(
        "GOOGL",
        "Alphabet Inc.",
        138.21,
        24_589_756,
        1.75e12,
        "Technology",
        "Internet Content & Information",
    ),
    "TSLA": StockProfile(
        "TSLA", "Tesla, Inc.", 248.98, 89_472_658, 7.95e11, "Consumer Cyclical", "Auto Manufacturers"
    ),
    "MSFT": StockProfile(
        "MSFT",
        "Microsoft Corporation",
        416.89,
        18_472_839,
        3.1e12,
        "Technology",
        "Software-Infrastructure",
    ),
    "AMZN": StockProfile(
        "AMZN", "Amazon.com, Inc.", 189.32, 32_847_291, 1.98e12, "Consumer Cyclical", "Internet Retail"
    ),
}

# Ticker universe for synthetic top movers
MOVER_UNIVERSE = (
    "AAPL", "MSFT", "GOOGL", "AMZN", "TSLA", "NVDA", "META", "NFLX", "AMD", "INTC",
    "ORCL", "CRM", "ADBE", "PYPL", "UBER", "SHOP", "SQ", "COIN", "PLTR", "SNAP",
    "F", "GM", "BAC", "JPM", "WFC", "T", "VZ", "PFE", "KO", "DIS",
)

INTRADAY_POINTS = 50

INTERVAL_MINUTES: dict[str, int] = {
    "1min": 1,
    "5min": 5,
    "15min": 15,
    "30min": 30,
    "60min": 60,
}


def generic_profile(symbol: str) -> StockProfile:
    """Profile used for symbols outside the baseline table."""
    return StockProfile(
        symbol=symbol,
        name=f"{symbol} Inc.",
        price=100.0,
        volume=1_000_000,
        market_cap=1e10,
        sector="Technology",
        industry="Software",
    )


class MockDataGenerator:
    """Generates synthetic quotes, overviews, intraday series and movers.

    Example:
        mock = MockDataGenerator(rng=random.Random(42))
        quote = mock.quote("AAPL")
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        """Initialize the generator.

        Args:
            rng: Random source. Pass a seeded instance for reproducible output.
        """
        self._rng = rng or random.Random()

    def profile(self, symbol: str) -> StockProfile:
        """Get the baseline profile for a symbol."""
        symbol = symbol.upper()
        return BASELINE_STOCKS.get(symbol) or generic_profile(symbol)

    def _between(self, low: float, high: float) -> float:
        return low + self._rng.random() * (high - low)

    def quote(self, symbol: str) -> Quote:
        """Generate a quote jittered ±5% around the baseline price."""
        base = self.profile(symbol)
        price = base.price * (1 + self._between(-0.05, 0.05))
        change = price - base.price

        return Quote(
            symbol=symbol.upper(),
            price=price,
            change=change,
            change_percent=round(change / base.price * 100, 2),
            volume=int(base.volume * self._between(0.8, 1.2)),
            open=price * 0.995,
            high=price * 1.015,
            low=price * 0.985,
            previous_close=base.price,
        )

    def overview(self, symbol: str) -> CompanyOverview:
        """Generate an overview with fundamentals drawn from bounded ranges."""
        base = self.profile(symbol)
        r = self._between

        return CompanyOverview(
            symbol=symbol.upper(),
            name=base.name,
            description=(
                f"{base.name} is a leading company in the {base.sector} sector, "
                f"specializing in {base.industry}."
            ),
            sector=base.sector,
            industry=base.industry,
            market_cap=base.market_cap,
            pe_ratio=r(15, 50),
            peg_ratio=r(0.5, 2.5),
            book_value=r(10, 60),
            dividend_per_share=r(0, 5),
            dividend_yield=r(0, 3),
            eps=r(5, 25),
            revenue_per_share_ttm=r(50, 250),
            profit_margin=r(0.1, 0.4),
            operating_margin_ttm=r(0.15, 0.4),
            return_on_assets_ttm=r(0.05, 0.25),
            return_on_equity_ttm=r(0.1, 0.5),
            revenue_ttm=r(1e11, 3e11),
            gross_profit_ttm=r(5e10, 1.5e11),
            diluted_eps_ttm=r(5, 20),
            quarterly_earnings_growth_yoy=r(-0.1, 0.4),
            quarterly_revenue_growth_yoy=r(-0.05, 0.25),
            analyst_target_price=base.price * r(0.9, 1.1),
            trailing_pe=r(15, 50),
            forward_pe=r(12, 40),
            price_to_sales_ratio_ttm=r(2, 10),
            price_to_book_ratio=r(1, 11),
            ev_to_revenue=r(3, 15),
            ev_to_ebitda=r(8, 33),
            beta=r(0.5, 2.0),
            week52_high=base.price * r(1.1, 1.4),
            week52_low=base.price * r(0.7, 0.9),
            day50_moving_average=base.price * r(0.95, 1.05),
            day200_moving_average=base.price * r(0.9, 1.1),
            shares_outstanding=r(1e9, 1.6e10),
            shares_float=r(8e8, 1.28e10),
            shares_short=r(5e7, 2.5e8),
            shares_short_prior_month=r(4.5e7, 2.25e8),
            short_ratio=r(1, 6),
            short_percent_outstanding=r(0, 10),
            short_percent_float=r(0, 15),
            percent_insiders=r(0, 30),
            percent_institutions=r(60, 90),
            forward_annual_dividend_rate=r(0, 8),
            forward_annual_dividend_yield=r(0, 4),
            payout_ratio=r(0, 60),
            dividend_date="2024-11-15",
            ex_dividend_date="2024-11-08",
            last_split_factor="4:1",
            last_split_date="2020-08-31",
        )

    def intraday(
        self,
        symbol: str,
        interval: str = "5min",
        now: datetime | None = None,
    ) -> list[ChartPoint]:
        """Generate an intraday series, most recent bar first.

        Args:
            symbol: Stock ticker symbol.
            interval: Bar spacing; unknown intervals fall back to 5 minutes.
            now: Timestamp of the most recent bar (defaults to now, UTC).

        Returns:
            INTRADAY_POINTS chart points with strictly descending timestamps.
        """
        base = self.profile(symbol)
        step = timedelta(minutes=INTERVAL_MINUTES.get(interval, 5))
        now = (now or datetime.now(UTC)).replace(second=0, microsecond=0)
        volatility = 0.005

        points: list[ChartPoint] = []
        previous_close: float | None = None
        # Oldest first so each bar opens at the previous close
        for i in range(INTRADAY_POINTS - 1, -1, -1):
            close = base.price * (1 + self._between(-0.01, 0.01))
            open_ = previous_close if previous_close is not None else close
            high = max(open_, close) * (1 + self._rng.random() * volatility)
            low = min(open_, close) * (1 - self._rng.random() * volatility)
            points.append(
                ChartPoint(
                    timestamp=(now - i * step).isoformat(),
                    open=round(open_, 2),
                    high=round(high, 2),
                    low=round(low, 2),
                    close=round(close, 2),
                    volume=int(base.volume / 100 * self._between(0.5, 1.5)),
                )
            )
            previous_close = close

        points.reverse()
        return points

    def _mover(self, ticker: str, sign: int) -> MarketMover:
        base = self.profile(ticker)
        percent = self._between(0.5, 15.0) * sign
        price = base.price * (1 + percent / 100)
        return MarketMover(
            ticker=ticker,
            price=round(price, 2),
            change_amount=round(price - base.price, 2),
            change_percentage=round(percent, 2),
            volume=int(base.volume * self._between(0.5, 3.0)),
        )

    def top_movers(self) -> MarketMovers:
        """Generate gainers, losers and most active lists of MARKET_MOVERS_LIMIT each."""
        tickers = self._rng.sample(MOVER_UNIVERSE, 2 * MARKET_MOVERS_LIMIT)
        gainers = sorted(
            (self._mover(t, 1) for t in tickers[:MARKET_MOVERS_LIMIT]),
            key=lambda m: m.change_percentage,
            reverse=True,
        )
        losers = sorted(
            (self._mover(t, -1) for t in tickers[MARKET_MOVERS_LIMIT:]),
            key=lambda m: m.change_percentage,
        )
        active = sorted(
            (
                self._mover(t, self._rng.choice((1, -1)))
                for t in self._rng.sample(MOVER_UNIVERSE, MARKET_MOVERS_LIMIT)
            ),
            key=lambda m: m.volume,
            reverse=True,
        )
        return MarketMovers(gainers=gainers, losers=losers, most_active=active)
