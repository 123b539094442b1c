"""Sentiment analysis.

This module contains:
- SentimentAnalyzer: text-model classification with keyword fallback
- classify_keywords: the keyword-count classifier
- SentimentResult and its enums
"""

from stockpulse.sentiment.analyzer import (
    SentimentAnalyzer,
    TextModelError,
    TextModelNotConfigured,
    extract_json_block,
    validate_sentiment_payload,
)
from stockpulse.sentiment.keywords import (
    NEGATIVE_KEYWORDS,
    POSITIVE_KEYWORDS,
    classify_keywords,
)
from stockpulse.sentiment.models import MarketImpact, Sentiment, SentimentResult, Timeframe

__all__ = [
    "SentimentAnalyzer",
    "TextModelError",
    "TextModelNotConfigured",
    "extract_json_block",
    "validate_sentiment_payload",
    "classify_keywords",
    "NEGATIVE_KEYWORDS",
    "POSITIVE_KEYWORDS",
    "MarketImpact",
    "Sentiment",
    "SentimentResult",
    "Timeframe",
]
