"""Tests for the sentiment endpoints."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from stockpulse.api.dependencies import ServiceContainer
from stockpulse.api.routes import create_app
from stockpulse.config import Settings
from stockpulse.resilience.degradation import DegradedResponse
from stockpulse.sentiment.analyzer import KEYWORD_FALLBACK_NOTE
from stockpulse.sentiment.keywords import classify_keywords


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings with no provider keys and inbound limiting disabled."""
    monkeypatch.delenv("ALPHA_VANTAGE_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    return Settings(API_RATE_LIMIT_ENABLED=False)


@pytest.fixture
def container(settings: Settings) -> ServiceContainer:
    """Create the service container."""
    return ServiceContainer.from_settings(settings)


@pytest.fixture
def client(container: ServiceContainer) -> TestClient:
    """Create test client."""
    return TestClient(create_app(container=container))


def text_model(reply: str) -> MagicMock:
    """Build a mocked async Anthropic client returning one text reply."""
    client = MagicMock()
    client.messages.create = AsyncMock(
        return_value=SimpleNamespace(content=[SimpleNamespace(type="text", text=reply)])
    )
    client.close = AsyncMock()
    return client


class TestAnalyze:
    """Tests for POST /api/sentiment/analyze."""

    def test_keyword_fallback(self, client: TestClient) -> None:
        """Test an unavailable model falls back to keyword classification."""
        response = client.post(
            "/api/sentiment/analyze",
            json={
                "text": "Company reports strong profit growth and beats earnings expectations",
                "symbol": "AAPL",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["sentiment"] == "positive"
        assert data["marketImpact"] == "bullish"
        assert data["source"] == "keyword_fallback"
        assert data["note"] == KEYWORD_FALLBACK_NOTE
        assert data["reasoning"].startswith("Fallback analysis based on keyword count")
        assert data["cached"] is False
        assert "timestamp" in data

    def test_model_result(self, client: TestClient, container: ServiceContainer) -> None:
        """Test a valid model reply is returned without a note."""
        container.analyzer._client = text_model(
            json.dumps(
                {
                    "sentiment": "negative",
                    "confidence": 0.85,
                    "reasoning": "Guidance cut",
                    "keywords": ["guidance", "cut"],
                    "marketImpact": "bearish",
                    "timeframe": "long-term",
                }
            )
        )

        data = client.post("/api/sentiment/analyze", json={"text": "Guidance cut"}).json()

        assert data["sentiment"] == "negative"
        assert data["confidence"] == 0.85
        assert data["timeframe"] == "long-term"
        assert data["source"] == "text_model"
        assert "note" not in data

    def test_repeat_is_cached(self, client: TestClient) -> None:
        """Test identical texts are served from cache."""
        body = {"text": "Shares fall on weak guidance"}
        client.post("/api/sentiment/analyze", json=body)

        data = client.post("/api/sentiment/analyze", json=body).json()

        assert data["cached"] is True
        assert data["sentiment"] == "negative"

    def test_empty_text(self, client: TestClient) -> None:
        """Test blank text is rejected."""
        response = client.post("/api/sentiment/analyze", json={"text": "   "})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid input"

    def test_non_string_text(self, client: TestClient) -> None:
        """Test non-string text is rejected."""
        response = client.post("/api/sentiment/analyze", json={"text": 42})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid input"

    def test_text_too_long(self, client: TestClient) -> None:
        """Test texts over 5000 characters are rejected."""
        response = client.post("/api/sentiment/analyze", json={"text": "a" * 5001})

        assert response.status_code == 400
        assert response.json()["error"] == "Text too long"

    def test_symbol_too_long(self, client: TestClient) -> None:
        """Test overlong symbols are rejected."""
        response = client.post(
            "/api/sentiment/analyze", json={"text": "fine", "symbol": "ABCDEFGHIJK"}
        )
        assert response.status_code == 400


class TestBatch:
    """Tests for POST /api/sentiment/batch."""

    def test_batch(self, client: TestClient) -> None:
        """Test every article is analyzed and indexed."""
        response = client.post(
            "/api/sentiment/batch",
            json={"articles": [{"text": "record profit"}, {"text": "bankruptcy warning"}]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["successful"] == 2
        assert [r["index"] for r in data["results"]] == [0, 1]
        assert data["results"][0]["sentiment"] == "positive"
        assert data["results"][1]["sentiment"] == "negative"

    def test_one_failure_does_not_affect_others(
        self, client: TestClient, container: ServiceContainer
    ) -> None:
        """Test a failing article is reported while the rest succeed."""

        async def analyze(text: str, symbol: str | None = None) -> DegradedResponse:
            if text == "explode":
                raise RuntimeError("analyzer crashed")
            return DegradedResponse(result=classify_keywords(text), source="keyword_fallback")

        with patch.object(container.analyzer, "analyze", side_effect=analyze):
            response = client.post(
                "/api/sentiment/batch",
                json={
                    "articles": [
                        {"text": "strong growth"},
                        {"text": "explode"},
                        {"text": "weak decline"},
                    ]
                },
            )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["successful"] == 2
        assert data["results"][1] == {
            "index": 1,
            "error": "Analysis failed",
            "sentiment": "neutral",
            "confidence": 0,
            "reasoning": "Failed to analyze",
        }
        assert data["results"][0]["sentiment"] == "positive"
        assert data["results"][2]["sentiment"] == "negative"

    def test_empty_batch(self, client: TestClient) -> None:
        """Test an empty article list is rejected."""
        response = client.post("/api/sentiment/batch", json={"articles": []})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid input"

    def test_too_many_articles(self, client: TestClient) -> None:
        """Test batches over 10 articles are rejected."""
        response = client.post(
            "/api/sentiment/batch", json={"articles": [{"text": "ok"}] * 11}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Too many articles"

    def test_blank_article(self, client: TestClient) -> None:
        """Test an article without text is rejected."""
        response = client.post(
            "/api/sentiment/batch", json={"articles": [{"text": "ok"}, {"text": ""}]}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid article"

    def test_article_too_long(self, client: TestClient) -> None:
        """Test articles over 2000 characters are rejected."""
        response = client.post(
            "/api/sentiment/batch", json={"articles": [{"text": "a" * 2001}]}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Article too long"


class TestSentimentHealth:
    """Tests for GET /api/sentiment/health."""

    def test_degraded_without_model(self, client: TestClient) -> None:
        """Test an unconfigured model reports keyword fallback."""
        data = client.get("/api/sentiment/health").json()

        assert data["status"] == "degraded"
        assert data["service"] == "sentiment-analysis"
        assert data["textModel"] == "disconnected"
        assert data["fallback"] == "keyword"

    def test_healthy_with_model(self, client: TestClient, container: ServiceContainer) -> None:
        """Test a responsive model reports healthy."""
        container.analyzer._client = text_model("pong")

        data = client.get("/api/sentiment/health").json()

        assert data["status"] == "healthy"
        assert data["textModel"] == "connected"
        assert data["fallback"] is None
