"""Tests for the text model sentiment analyzer."""

import json
import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from stockpulse.resilience.degradation import (
    ComponentHealth,
    ComponentType,
    DegradationLevel,
)
from stockpulse.sentiment.analyzer import (
    KEYWORD_FALLBACK_NOTE,
    SentimentAnalyzer,
    TextModelError,
    TextModelNotConfigured,
    extract_json_block,
    validate_sentiment_payload,
)
from stockpulse.sentiment.models import MarketImpact, Sentiment, Timeframe


def model_reply(text: str) -> SimpleNamespace:
    """Build a Messages API response with a single text block."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)], stop_reason="end_turn")


def make_client(reply: str | None = None, error: Exception | None = None) -> MagicMock:
    """Build a mocked async Anthropic client."""
    client = MagicMock()
    client.messages.create = AsyncMock(
        return_value=model_reply(reply or ""), side_effect=error
    )
    client.close = AsyncMock()
    return client


VALID_REPLY = json.dumps(
    {
        "sentiment": "positive",
        "confidence": 0.92,
        "reasoning": "Strong earnings beat",
        "keywords": ["earnings", "beat", "record"],
        "marketImpact": "bullish",
        "timeframe": "medium-term",
    }
)


class TestExtractJsonBlock:
    """Tests for extract_json_block."""

    def test_json_with_surrounding_text(self) -> None:
        """Test JSON is extracted from prose."""
        data = extract_json_block('Here you go:\n{"sentiment": "negative"}\nThanks')
        assert data == {"sentiment": "negative"}

    def test_no_json(self) -> None:
        """Test replies without braces are rejected."""
        with pytest.raises(TextModelError, match="No JSON"):
            extract_json_block("I cannot help with that")

    def test_invalid_json(self) -> None:
        """Test malformed JSON is rejected."""
        with pytest.raises(TextModelError, match="Invalid JSON"):
            extract_json_block("{sentiment: positive}")


class TestValidateSentimentPayload:
    """Tests for validate_sentiment_payload."""

    def test_valid_payload(self) -> None:
        """Test all fields are taken from a valid payload."""
        result = validate_sentiment_payload(json.loads(VALID_REPLY))
        assert result.sentiment == Sentiment.POSITIVE
        assert result.confidence == 0.92
        assert result.market_impact == MarketImpact.BULLISH
        assert result.timeframe == Timeframe.MEDIUM_TERM
        assert result.keywords == ["earnings", "beat", "record"]

    def test_invalid_values_replaced(self) -> None:
        """Test out-of-domain values fall back to neutral defaults."""
        result = validate_sentiment_payload(
            {
                "sentiment": "ecstatic",
                "confidence": 3.5,
                "keywords": "not a list",
                "marketImpact": ["bullish"],
                "timeframe": "forever",
            }
        )
        assert result.sentiment == Sentiment.NEUTRAL
        assert result.confidence == 1.0
        assert result.reasoning == "No reasoning provided"
        assert result.keywords == []
        assert result.market_impact == MarketImpact.NEUTRAL
        assert result.timeframe == Timeframe.SHORT_TERM

    def test_unparseable_confidence(self) -> None:
        """Test non-numeric confidence becomes 0.5."""
        assert validate_sentiment_payload({"confidence": "high"}).confidence == 0.5
        assert validate_sentiment_payload({"confidence": -1}).confidence == 0.0

    def test_keywords_truncated(self) -> None:
        """Test keyword lists are bounded."""
        result = validate_sentiment_payload({"keywords": [str(i) for i in range(20)]})
        assert len(result.keywords) == 7

    def test_snake_case_market_impact(self) -> None:
        """Test market_impact is accepted as an alternative key."""
        assert validate_sentiment_payload({"market_impact": "bearish"}).market_impact == (
            MarketImpact.BEARISH
        )


class TestSentimentAnalyzer:
    """Tests for SentimentAnalyzer."""

    def test_not_configured(self) -> None:
        """Test analyzer without key or client is unconfigured."""
        with patch.dict(os.environ, {}, clear=True):
            analyzer = SentimentAnalyzer(api_key=None)
            assert analyzer.is_configured is False
            with pytest.raises(TextModelNotConfigured):
                analyzer._get_client()

    def test_build_prompt_includes_symbol(self) -> None:
        """Test the symbol context is added to the prompt."""
        prompt = SentimentAnalyzer.build_prompt("Shares rallied", "aapl")
        assert "related to stock symbol AAPL" in prompt
        assert '"Shares rallied"' in prompt

    @pytest.mark.asyncio
    async def test_analyze_with_model(self) -> None:
        """Test a valid model reply is returned as-is."""
        client = make_client(VALID_REPLY)
        analyzer = SentimentAnalyzer(client=client)

        response = await analyzer.analyze("Record earnings", "AAPL")

        assert response.source == "text_model"
        assert response.note is None
        assert response.result.confidence == 0.92
        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["messages"][0]["role"] == "user"
        assert "AAPL" in kwargs["messages"][0]["content"]
        status = analyzer.degradation.get_component_status(ComponentType.TEXT_MODEL)
        assert status.health == ComponentHealth.HEALTHY

    @pytest.mark.asyncio
    async def test_unparseable_reply_classifies_input(self) -> None:
        """Test an unparseable reply falls back to keywords on the input text."""
        # The reply itself is negative; the input text is positive
        client = make_client("terrible loss, decline, bankruptcy")
        analyzer = SentimentAnalyzer(client=client)

        response = await analyzer.analyze("excellent profit success")

        assert response.source == "keyword_fallback"
        assert response.degradation_level == DegradationLevel.KEYWORD_FALLBACK
        assert response.note == KEYWORD_FALLBACK_NOTE
        assert response.result.sentiment == Sentiment.POSITIVE
        assert response.result.confidence == 0.8

    @pytest.mark.asyncio
    async def test_model_error_falls_back(self) -> None:
        """Test model errors degrade to keyword classification."""
        analyzer = SentimentAnalyzer(client=make_client(error=RuntimeError("overloaded")))

        response = await analyzer.analyze("Shares fall on weak guidance")

        assert response.source == "keyword_fallback"
        assert response.result.sentiment == Sentiment.NEGATIVE
        status = analyzer.degradation.get_component_status(ComponentType.TEXT_MODEL)
        assert status.health == ComponentHealth.UNHEALTHY

    @pytest.mark.asyncio
    async def test_unconfigured_falls_back(self) -> None:
        """Test a missing key degrades to keyword classification."""
        with patch.dict(os.environ, {}, clear=True):
            analyzer = SentimentAnalyzer(api_key=None)
            response = await analyzer.analyze("growth ahead")

        assert response.source == "keyword_fallback"
        assert response.result.sentiment == Sentiment.POSITIVE

    @pytest.mark.asyncio
    async def test_generate_content_rejects_empty(self) -> None:
        """Test blank replies raise TextModelError."""
        analyzer = SentimentAnalyzer(client=make_client("   "))
        with pytest.raises(TextModelError, match="Empty response"):
            await analyzer.generate_content("hello")

    @pytest.mark.asyncio
    async def test_generate_content_wraps_errors(self) -> None:
        """Test client failures are wrapped in TextModelError."""
        analyzer = SentimentAnalyzer(client=make_client(error=RuntimeError("boom")))
        with pytest.raises(TextModelError, match="boom"):
            await analyzer.generate_content("hello")

    @pytest.mark.asyncio
    async def test_connection_error_is_retried(self) -> None:
        """Test transient connection errors are retried."""
        client = make_client()
        client.messages.create = AsyncMock(
            side_effect=[ConnectionError("reset"), model_reply("pong")]
        )
        analyzer = SentimentAnalyzer(client=client)

        assert await analyzer.generate_content("ping") == "pong"
        assert client.messages.create.await_count == 2

    @pytest.mark.asyncio
    async def test_timeout_is_not_retried(self) -> None:
        """Test a timed-out call degrades after a single attempt."""
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client = make_client(error=anthropic.APITimeoutError(request=request))
        analyzer = SentimentAnalyzer(client=client)

        response = await analyzer.analyze("strong growth")

        assert client.messages.create.await_count == 1
        assert response.source == "keyword_fallback"
        assert response.result.sentiment == Sentiment.POSITIVE

    def test_sdk_retries_disabled(self) -> None:
        """Test the Anthropic client is built without its own retries."""
        analyzer = SentimentAnalyzer(api_key="sk-test", timeout=30.0)

        client = analyzer._get_client()

        assert client.max_retries == 0

    @pytest.mark.asyncio
    async def test_check_connection(self) -> None:
        """Test connection probe results."""
        assert await SentimentAnalyzer(client=make_client("ok")).check_connection() is True
        failing = SentimentAnalyzer(client=make_client(error=RuntimeError("down")))
        assert await failing.check_connection() is False

    @pytest.mark.asyncio
    async def test_check_connection_unconfigured(self) -> None:
        """Test probe is false without a key."""
        with patch.dict(os.environ, {}, clear=True):
            assert await SentimentAnalyzer(api_key=None).check_connection() is False

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        """Test close delegates to the client."""
        client = make_client("ok")
        await SentimentAnalyzer(client=client).close()
        client.close.assert_awaited_once()
