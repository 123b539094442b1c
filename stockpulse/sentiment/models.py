"""Sentiment analysis result models."""

from enum import Enum

from pydantic import Field

from stockpulse.data.models import ApiModel

MAX_KEYWORDS = 7


class Sentiment(str, Enum):
    """Overall tone of a text."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class MarketImpact(str, Enum):
    """Expected direction of market impact."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Timeframe(str, Enum):
    """Expected horizon of the impact."""

    SHORT_TERM = "short-term"
    MEDIUM_TERM = "medium-term"
    LONG_TERM = "long-term"


class SentimentResult(ApiModel):
    """Sentiment classification of a piece of text.

    Attributes:
        sentiment: Overall tone.
        confidence: Confidence in the classification, 0 to 1.
        reasoning: Short explanation of the classification.
        keywords: Words that influenced the classification.
        market_impact: Expected market direction.
        timeframe: Expected horizon of the impact.
    """

    sentiment: Sentiment = Sentiment.NEUTRAL
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reasoning: str = "No reasoning provided"
    keywords: list[str] = Field(default_factory=list, max_length=MAX_KEYWORDS)
    market_impact: MarketImpact = MarketImpact.NEUTRAL
    timeframe: Timeframe = Timeframe.SHORT_TERM
