"""Text sentiment analysis backed by Anthropic's Messages API.

SentimentAnalyzer asks the text model for a JSON-structured classification
and validates every field of the reply. Whenever the model is unconfigured,
unreachable, or answers with something unparseable, the input text is
classified with the keyword fallback instead.
"""

import json
import math
import os
import re
from enum import Enum
from typing import Any, TypeVar

import anthropic
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from stockpulse.data.models import DataSource
from stockpulse.resilience.degradation import (
    ComponentType,
    DegradationLevel,
    DegradationManager,
    DegradedResponse,
    with_fallback,
)
from stockpulse.sentiment.keywords import classify_keywords
from stockpulse.sentiment.models import (
    MAX_KEYWORDS,
    MarketImpact,
    Sentiment,
    SentimentResult,
    Timeframe,
)

logger = structlog.get_logger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
KEYWORD_FALLBACK_NOTE = "Text model unavailable; sentiment estimated from keywords"

E = TypeVar("E", bound=Enum)

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")

SENTIMENT_PROMPT = """You are a financial sentiment analysis expert. Analyze the following text {symbol_context}and provide a JSON response with the following structure:

{{
  "sentiment": "positive|negative|neutral",
  "confidence": 0.0-1.0,
  "reasoning": "brief explanation of the sentiment",
  "keywords": ["key", "words", "that", "influenced", "sentiment"],
  "marketImpact": "bullish|bearish|neutral",
  "timeframe": "short-term|medium-term|long-term"
}}

Guidelines:
- sentiment: Overall emotional tone (positive/negative/neutral)
- confidence: How confident you are in the analysis (0.0 to 1.0)
- reasoning: Brief explanation of why you assigned this sentiment
- keywords: 3-7 key words that influenced the sentiment
- marketImpact: Potential impact on stock/market (bullish/bearish/neutral)
- timeframe: Expected timeframe of impact (short-term: days, medium-term: weeks, long-term: months)

Text to analyze:
{text}

Respond only with valid JSON, no additional text."""


class TextModelError(Exception):
    """Raised when the text model cannot produce a usable reply."""

    pass


class TextModelNotConfigured(TextModelError):
    """Raised when no API key is available for the text model."""

    pass


def extract_json_block(text: str) -> dict[str, Any]:
    """Parse the outermost {...} block of a model reply.

    Raises:
        TextModelError: If no JSON object can be found or decoded.
    """
    match = _JSON_BLOCK.search(text)
    if not match:
        raise TextModelError("No JSON found in response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise TextModelError(f"Invalid JSON in response: {e}") from e
    if not isinstance(data, dict):
        raise TextModelError("Response JSON is not an object")
    return data


def coerce_enum(value: Any, enum_cls: type[E], default: E) -> E:
    """Convert a reply value to an enum member, or return the default."""
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _validate_confidence(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.5
    if math.isnan(number):
        return 0.5
    return max(0.0, min(1.0, number))


def validate_sentiment_payload(data: dict[str, Any]) -> SentimentResult:
    """Build a SentimentResult from model JSON, replacing invalid fields.

    Unknown enum values become neutral/neutral/short-term, confidence is
    clamped to [0, 1] (0.5 when unparseable) and keywords are bounded.
    """
    sentiment = data.get("sentiment")
    impact = data.get("marketImpact", data.get("market_impact"))
    timeframe = data.get("timeframe")
    keywords = data.get("keywords")

    return SentimentResult(
        sentiment=coerce_enum(sentiment, Sentiment, Sentiment.NEUTRAL),
        confidence=_validate_confidence(data.get("confidence")),
        reasoning=str(data.get("reasoning") or "No reasoning provided"),
        keywords=[str(k) for k in keywords[:MAX_KEYWORDS]] if isinstance(keywords, list) else [],
        market_impact=coerce_enum(impact, MarketImpact, MarketImpact.NEUTRAL),
        timeframe=coerce_enum(timeframe, Timeframe, Timeframe.SHORT_TERM),
    )


class SentimentAnalyzer:
    """Classifies financial text with the text model, falling back to keywords.

    Attributes:
        model: Model identifier to use for completions.
        max_tokens: Maximum tokens for model responses.

    Example:
        analyzer = SentimentAnalyzer(api_key="sk-...")
        response = await analyzer.analyze("Shares rallied on record revenue", "AAPL")
        print(response.result.sentiment, response.source)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 1024,
        timeout: float = 30.0,
        client: Any | None = None,
        degradation: DegradationManager | None = None,
    ) -> None:
        """Initialize the analyzer.

        Args:
            api_key: Anthropic API key. If not provided, reads from
                ANTHROPIC_API_KEY environment variable.
            model: Model identifier.
            max_tokens: Maximum tokens per reply.
            timeout: Request timeout in seconds.
            client: Pre-built async Anthropic client (used by tests).
            degradation: Manager recording text model health.
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client = client
        self._degradation = degradation or DegradationManager()
        self._logger = logger.bind(component="sentiment_analyzer")

    @property
    def is_configured(self) -> bool:
        """Check if the text model can be called."""
        return self._client is not None or bool(self.api_key)

    @property
    def degradation(self) -> DegradationManager:
        """Degradation manager receiving text model health updates."""
        return self._degradation

    def _get_client(self) -> Any:
        """Get or create the Anthropic client."""
        if self._client is None:
            if not self.api_key:
                raise TextModelNotConfigured("ANTHROPIC_API_KEY not configured")
            # Retries are handled by _call_model only
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key, timeout=self.timeout, max_retries=0
            )
        return self._client

    @retry(
        retry=(
            retry_if_exception_type((ConnectionError, anthropic.APIConnectionError))
            & retry_if_not_exception_type(anthropic.APITimeoutError)
        ),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _call_model(self, prompt: str) -> str:
        """Make a retry-enabled call to the text model.

        Args:
            prompt: User prompt.

        Returns:
            Concatenated text blocks of the reply.
        """
        client = self._get_client()
        self._logger.debug("calling_text_model", model=self.model, prompt_chars=len(prompt))

        response = await client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        self._logger.debug(
            "text_model_response_received",
            stop_reason=getattr(response, "stop_reason", None),
            response_chars=len(text),
        )
        return text

    async def generate_content(self, prompt: str) -> str:
        """Generate raw text for a prompt.

        Args:
            prompt: User prompt.

        Returns:
            Model reply text.

        Raises:
            TextModelError: If the model is not configured, fails, or
                returns an empty reply.
        """
        try:
            text = await self._call_model(prompt)
        except TextModelError:
            raise
        except Exception as e:
            self._logger.error("text_model_generation_failed", error=str(e))
            raise TextModelError(str(e)) from e

        if not text.strip():
            raise TextModelError("Empty response from text model")
        return text

    @staticmethod
    def build_prompt(text: str, symbol: str | None = None) -> str:
        """Build the JSON-structured sentiment prompt."""
        symbol_context = f"related to stock symbol {symbol.upper()} " if symbol else ""
        return SENTIMENT_PROMPT.format(symbol_context=symbol_context, text=json.dumps(text))

    async def analyze(
        self,
        text: str,
        symbol: str | None = None,
    ) -> DegradedResponse[SentimentResult]:
        """Classify the sentiment of a text.

        Args:
            text: Text to classify.
            symbol: Optional stock symbol the text relates to.

        Returns:
            DegradedResponse with a model or keyword-fallback result.
        """

        async def ask_model() -> SentimentResult:
            reply = await self.generate_content(self.build_prompt(text, symbol))
            return validate_sentiment_payload(extract_json_block(reply))

        response = await with_fallback(
            ask_model,
            lambda: classify_keywords(text),
            component=ComponentType.TEXT_MODEL,
            level=DegradationLevel.KEYWORD_FALLBACK,
            primary_source=DataSource.TEXT_MODEL.value,
            fallback_source=DataSource.KEYWORD_FALLBACK.value,
            note=KEYWORD_FALLBACK_NOTE,
            manager=self._degradation,
        )

        self._logger.info(
            "sentiment_analyzed",
            symbol=symbol,
            sentiment=response.result.sentiment.value,
            source=response.source,
        )
        return response

    async def check_connection(self) -> bool:
        """Probe the text model with a short prompt.

        Returns:
            True if the model replied with non-empty text.
        """
        if not self.is_configured:
            return False
        try:
            await self.generate_content("Test message")
        except TextModelError as e:
            self._logger.warning("text_model_connection_failed", error=str(e))
            return False
        return True

    async def close(self) -> None:
        """Close the underlying client if one was created."""
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
