"""Keyword-count sentiment classifier.

Used whenever the text model is unavailable or returns something that
cannot be parsed. Matching is plain substring counting on the lowercased
text, so "upgrade" also counts as "up".
"""

from stockpulse.sentiment.models import MarketImpact, Sentiment, SentimentResult, Timeframe

POSITIVE_KEYWORDS: tuple[str, ...] = (
    "good", "great", "excellent", "positive", "growth", "profit", "gain", "rise", "up",
    "increase", "strong", "bullish", "optimistic", "success", "outperform", "beat",
    "exceed", "revenue", "earnings", "dividend", "buy", "upgrade", "target",
)

NEGATIVE_KEYWORDS: tuple[str, ...] = (
    "bad", "poor", "negative", "loss", "decline", "fall", "down", "decrease", "weak",
    "bearish", "pessimistic", "failure", "underperform", "miss", "below", "cut",
    "downgrade", "sell", "concern", "risk", "warning", "debt", "bankruptcy",
)

MAX_FALLBACK_KEYWORDS = 5
TIE_CONFIDENCE = 0.3
MAX_FALLBACK_CONFIDENCE = 0.8


def _count(text: str, keywords: tuple[str, ...], found: list[str]) -> int:
    total = 0
    for word in keywords:
        matches = text.count(word)
        if matches:
            total += matches
            found.append(word)
    return total


def classify_keywords(text: str) -> SentimentResult:
    """Classify text by counting positive and negative keyword occurrences.

    Args:
        text: Text to classify.

    Returns:
        SentimentResult. Ties (including no matches) are neutral with
        confidence 0.3; otherwise confidence grows 0.1 per net keyword
        from 0.5, capped at 0.8.
    """
    lowered = text.lower()
    found: list[str] = []
    positive = _count(lowered, POSITIVE_KEYWORDS, found)
    negative = _count(lowered, NEGATIVE_KEYWORDS, found)

    if positive > negative:
        sentiment, impact = Sentiment.POSITIVE, MarketImpact.BULLISH
        confidence = min(MAX_FALLBACK_CONFIDENCE, 0.5 + (positive - negative) * 0.1)
    elif negative > positive:
        sentiment, impact = Sentiment.NEGATIVE, MarketImpact.BEARISH
        confidence = min(MAX_FALLBACK_CONFIDENCE, 0.5 + (negative - positive) * 0.1)
    else:
        sentiment, impact = Sentiment.NEUTRAL, MarketImpact.NEUTRAL
        confidence = TIE_CONFIDENCE

    return SentimentResult(
        sentiment=sentiment,
        # 0.5 + 3 * 0.1 is 0.8000000000000001 in floating point
        confidence=round(confidence, 2),
        reasoning=(
            f"Fallback analysis based on keyword count: {positive} positive, {negative} negative"
        ),
        keywords=found[:MAX_FALLBACK_KEYWORDS],
        market_impact=impact,
        timeframe=Timeframe.SHORT_TERM,
    )
