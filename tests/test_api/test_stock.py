"""Tests for the stock endpoints."""

import httpx
import pytest
from fastapi.testclient import TestClient

from stockpulse.api.dependencies import ServiceContainer
from stockpulse.api.routes import create_app
from stockpulse.api.stock import describe_sources
from stockpulse.config import Settings
from stockpulse.data.market import MOCK_DATA_NOTE
from stockpulse.resilience.degradation import DegradationLevel, DegradedResponse

PROVIDER_PAYLOADS = {
    "GLOBAL_QUOTE": {
        "Global Quote": {
            "01. symbol": "AAPL",
            "05. price": "185.50",
            "06. volume": "50000000",
            "09. change": "2.50",
            "10. change percent": "1.37%",
        }
    },
    "OVERVIEW": {"Symbol": "AAPL", "Name": "Apple Inc", "PERatio": "29.1"},
    "TIME_SERIES_INTRADAY": {
        "Time Series (5min)": {
            "2024-01-02 15:55:00": {"1. open": "185.1", "4. close": "185.5", "5. volume": "900"},
            "2024-01-02 16:00:00": {"1. open": "185.5", "4. close": "185.4", "5. volume": "700"},
        }
    },
}


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings with no provider keys and inbound limiting disabled."""
    monkeypatch.delenv("ALPHA_VANTAGE_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    return Settings(MARKET_DATA_INTERVAL_SECONDS=0, API_RATE_LIMIT_ENABLED=False)


@pytest.fixture
def container(settings: Settings) -> ServiceContainer:
    """Create the service container."""
    return ServiceContainer.from_settings(settings)


@pytest.fixture
def client(container: ServiceContainer) -> TestClient:
    """Create test client."""
    return TestClient(create_app(container=container))


def use_provider(container: ServiceContainer, handler) -> None:
    """Route the container's Alpha Vantage client through a mock transport."""
    container.market.client.api_key = "test_key"
    container.market.client._transport = httpx.MockTransport(handler)


class TestDescribeSources:
    """Tests for describe_sources."""

    def test_all_live(self) -> None:
        """Test live responses report their source without a note."""
        summary = describe_sources(DegradedResponse(result=1, source="alpha_vantage"))
        assert summary == {"source": "alpha_vantage"}

    def test_any_fallback(self) -> None:
        """Test one degraded response sets the source and note."""
        live = DegradedResponse(result=1, source="alpha_vantage")
        mock = DegradedResponse(
            result=2,
            degradation_level=DegradationLevel.MOCK_DATA,
            source="mock",
            warnings=["simulated"],
        )
        other = DegradedResponse(
            result=3,
            degradation_level=DegradationLevel.MOCK_DATA,
            source="mock",
            warnings=["simulated"],
        )
        assert describe_sources(live, mock, other) == {"source": "mock", "note": "simulated"}


class TestGetStock:
    """Tests for GET /api/stock/{symbol}."""

    def test_mock_data_without_key(self, client: TestClient) -> None:
        """Test an unconfigured provider serves mock data with a note."""
        response = client.get("/api/stock/aapl")

        assert response.status_code == 200
        data = response.json()
        assert data["symbol"] == "AAPL"
        assert data["source"] == "mock"
        assert data["note"] == MOCK_DATA_NOTE
        assert data["price"] > 0
        assert data["price"] == data["quote"]["price"]
        assert data["changePercent"] == data["quote"]["changePercent"]
        assert data["overview"]["name"] == "Apple Inc."
        assert len(data["chartData"]) == 50
        assert data["cached"] is False

    def test_quota_notice_serves_mock(self, client: TestClient, container: ServiceContainer) -> None:
        """Test a provider quota notice yields mock data flagged with a note."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"Note": "API call frequency is 5 calls per minute."})

        use_provider(container, handler)

        response = client.get("/api/stock/AAPL")

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "mock"
        assert data["note"] == MOCK_DATA_NOTE
        assert container.market.stats["alpha_vantage_rate_limited"] == 3

    def test_live_data(self, client: TestClient, container: ServiceContainer) -> None:
        """Test live provider data is served without a note."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=PROVIDER_PAYLOADS[request.url.params["function"]])

        use_provider(container, handler)

        response = client.get("/api/stock/AAPL")

        data = response.json()
        assert data["source"] == "alpha_vantage"
        assert "note" not in data
        assert data["price"] == 185.5
        assert data["change"] == 2.5
        assert data["overview"]["peRatio"] == 29.1
        assert [p["timestamp"] for p in data["chartData"]] == [
            "2024-01-02 16:00:00",
            "2024-01-02 15:55:00",
        ]

    def test_second_request_cached(self, client: TestClient) -> None:
        """Test repeated requests are served from cache with the same data."""
        first = client.get("/api/stock/MSFT").json()
        second = client.get("/api/stock/msft").json()

        assert second["cached"] is True
        assert second["price"] == first["price"]
        assert second["chartData"] == first["chartData"]

    def test_symbol_too_long(self, client: TestClient) -> None:
        """Test overlong symbols are rejected."""
        response = client.get("/api/stock/ABCDEFGHIJK")

        assert response.status_code == 400
        assert response.json() == {
            "error": "Invalid stock symbol",
            "message": "Symbol must be 1-10 characters long",
        }


class TestGetChart:
    """Tests for GET /api/stock/{symbol}/chart/{interval}."""

    def test_chart(self, client: TestClient) -> None:
        """Test chart data for a valid interval, newest first."""
        response = client.get("/api/stock/TSLA/chart/15min")

        assert response.status_code == 200
        data = response.json()
        assert data["symbol"] == "TSLA"
        assert data["interval"] == "15min"
        assert len(data["data"]) == 50
        timestamps = [p["timestamp"] for p in data["data"]]
        assert timestamps == sorted(timestamps, reverse=True)

    def test_malformed_series_serves_mock(
        self, client: TestClient, container: ServiceContainer
    ) -> None:
        """Test a series with no usable bars falls back to mock data."""
        use_provider(
            container,
            lambda request: httpx.Response(
                200, json={"Time Series (5min)": {"2024-01-15 16:00:00": "bad"}}
            ),
        )

        data = client.get("/api/stock/AAPL/chart/5min").json()

        assert data["source"] == "mock"
        assert len(data["data"]) == 50
        assert "note" in data

    def test_invalid_interval(self, client: TestClient) -> None:
        """Test unsupported intervals are rejected."""
        response = client.get("/api/stock/TSLA/chart/2min")

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid interval"


class TestMarketMovers:
    """Tests for GET /api/stock/market/movers."""

    def test_movers(self, client: TestClient) -> None:
        """Test movers lists are returned in camelCase."""
        response = client.get("/api/stock/market/movers")

        assert response.status_code == 200
        data = response.json()
        assert len(data["gainers"]) == 10
        assert len(data["losers"]) == 10
        assert len(data["mostActive"]) == 10
        assert "changePercentage" in data["gainers"][0]
        assert data["source"] == "mock"

    def test_movers_cached(self, client: TestClient) -> None:
        """Test movers are cached between requests."""
        first = client.get("/api/stock/market/movers").json()
        second = client.get("/api/stock/market/movers").json()

        assert second["cached"] is True
        assert second["gainers"] == first["gainers"]
