"""Tests for Alpha Vantage payload parsing."""

import pytest

from stockpulse.data.models import ChartPoint, MarketMovers
from stockpulse.data.parsing import (
    parse_market_movers,
    parse_quote,
    parse_time_series,
    sort_chart_points,
    to_float,
    to_int,
    to_text,
)


class TestCoercion:
    """Tests for value coercion helpers."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("185.50", 185.5),
            ("1.3661%", 1.3661),
            ("1,234.5", 1234.5),
            (42, 42.0),
            ("None", 0.0),
            ("-", 0.0),
            ("", 0.0),
            (None, 0.0),
            ("nan", 0.0),
            ("inf", 0.0),
        ],
    )
    def test_to_float(self, value, expected: float) -> None:
        """Test numeric strings parse and junk becomes zero."""
        assert to_float(value) == pytest.approx(expected)

    def test_to_int_truncates_and_clamps(self) -> None:
        """Test ints are truncated and never negative."""
        assert to_int("1500.9") == 1500
        assert to_int("-10") == 0
        assert to_int("abc") == 0

    def test_to_text(self) -> None:
        """Test None reads as empty string."""
        assert to_text(None) == ""
        assert to_text(12) == "12"


class TestParseQuote:
    """Tests for parse_quote."""

    def test_missing_fields_default_to_zero(self) -> None:
        """Test a sparse quote block yields zeros and the requested symbol."""
        quote = parse_quote("msft", {"05. price": "410.2"})
        assert quote.symbol == "MSFT"
        assert quote.price == 410.2
        assert quote.change == 0.0
        assert quote.volume == 0


class TestSortChartPoints:
    """Tests for chart point ordering."""

    def test_most_recent_first(self) -> None:
        """Test points are ordered newest first."""
        points = [
            ChartPoint(timestamp="2024-01-02 09:30:00", open=1, high=1, low=1, close=1),
            ChartPoint(timestamp="2024-01-02 16:00:00", open=1, high=1, low=1, close=1),
            ChartPoint(timestamp="2024-01-02 12:15:00", open=1, high=1, low=1, close=1),
        ]
        ordered = sort_chart_points(points)
        assert [p.timestamp for p in ordered] == [
            "2024-01-02 16:00:00",
            "2024-01-02 12:15:00",
            "2024-01-02 09:30:00",
        ]

    def test_mixed_timezone_formats(self) -> None:
        """Test aware and naive timestamps sort together chronologically."""
        points = [
            ChartPoint(timestamp="2024-01-02T10:00:00+00:00", open=1, high=1, low=1, close=1),
            ChartPoint(timestamp="2024-01-02T11:00:00Z", open=1, high=1, low=1, close=1),
            ChartPoint(timestamp="2024-01-02 10:30:00", open=1, high=1, low=1, close=1),
        ]
        ordered = sort_chart_points(points)
        assert [p.timestamp for p in ordered] == [
            "2024-01-02T11:00:00Z",
            "2024-01-02 10:30:00",
            "2024-01-02T10:00:00+00:00",
        ]

    def test_unparseable_timestamps_sort_last(self) -> None:
        """Test unparseable timestamps go after parseable ones."""
        points = [
            ChartPoint(timestamp="garbage", open=1, high=1, low=1, close=1),
            ChartPoint(timestamp="2024-01-02 10:00:00", open=1, high=1, low=1, close=1),
        ]
        assert sort_chart_points(points)[0].timestamp == "2024-01-02 10:00:00"


class TestParseTimeSeries:
    """Tests for parse_time_series."""

    def test_skips_non_mapping_bars(self) -> None:
        """Test malformed bars are ignored."""
        series = {
            "2024-01-02 10:00:00": {"1. open": "1", "4. close": "2", "5. volume": "10"},
            "2024-01-02 10:05:00": "bad",
        }
        points = parse_time_series(series)
        assert len(points) == 1
        assert points[0].close == 2.0
        assert points[0].high == 0.0


class TestParseMarketMovers:
    """Tests for parse_market_movers."""

    def test_missing_lists_are_empty(self) -> None:
        """Test absent lists parse as empty."""
        movers = parse_market_movers({})
        assert movers == MarketMovers()

    def test_json_uses_camel_case(self) -> None:
        """Test serialized movers use camelCase keys."""
        movers = parse_market_movers(
            {"most_actively_traded": [{"ticker": "nvda", "change_amount": "1.5", "volume": "9"}]}
        )
        data = movers.to_json_dict()
        assert data["mostActive"][0]["ticker"] == "NVDA"
        assert data["mostActive"][0]["changeAmount"] == 1.5
