"""Sentiment analysis endpoints.

- POST /api/sentiment/analyze: classify one text
- POST /api/sentiment/batch: classify up to 10 texts concurrently
- GET /api/sentiment/health: text model connectivity
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter
from pydantic import BaseModel, Field

from stockpulse.api.dependencies import Container, ServiceContainer
from stockpulse.api.errors import ApiError
from stockpulse.cache.manager import CacheKeyBuilder, CacheType

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/sentiment", tags=["Sentiment"])

MAX_TEXT_LENGTH = 5000
MAX_ARTICLE_LENGTH = 2000
MAX_BATCH_SIZE = 10


class SentimentRequest(BaseModel):
    """Request body for a single analysis."""

    text: str = Field(..., description="Text to analyze")
    symbol: str | None = Field(default=None, description="Related stock symbol", max_length=10)


class BatchArticle(BaseModel):
    """One article of a batch request."""

    text: str
    symbol: str | None = Field(default=None, max_length=10)


class BatchRequest(BaseModel):
    """Request body for a batch analysis."""

    articles: list[BatchArticle] = Field(default_factory=list)


async def analyze_cached(
    container: ServiceContainer,
    text: str,
    symbol: str | None,
) -> tuple[dict[str, Any], bool]:
    """Analyze text, serving repeated texts from cache.

    Returns:
        Tuple of (result payload, whether it came from cache).
    """
    cache_key = CacheKeyBuilder.sentiment(text, symbol)
    cached = container.cache.get(cache_key)
    if cached is not None:
        return cached, True

    response = await container.analyzer.analyze(text, symbol)
    payload = {**response.result.to_json_dict(), "source": response.source}
    if response.note:
        payload["note"] = response.note

    container.cache.set(cache_key, payload, cache_type=CacheType.SENTIMENT)
    return payload, False


@router.post("/analyze")
async def analyze_sentiment(body: SentimentRequest, container: Container) -> dict[str, Any]:
    """Classify the sentiment of a text."""
    if not body.text.strip():
        raise ApiError(400, "Invalid input", "Text is required and must be a string")
    if len(body.text) > MAX_TEXT_LENGTH:
        raise ApiError(400, "Text too long", f"Text must be less than {MAX_TEXT_LENGTH} characters")

    payload, cached = await analyze_cached(container, body.text, body.symbol)
    return {**payload, "cached": cached, "timestamp": datetime.now(UTC).isoformat()}


@router.post("/batch")
async def analyze_batch(body: BatchRequest, container: Container) -> dict[str, Any]:
    """Classify up to 10 texts concurrently.

    A failure on one article is reported in its entry without affecting
    the others.
    """
    articles = body.articles
    if not articles:
        raise ApiError(400, "Invalid input", "Articles must be a non-empty array")
    if len(articles) > MAX_BATCH_SIZE:
        raise ApiError(
            400, "Too many articles", f"Maximum {MAX_BATCH_SIZE} articles per batch request"
        )
    for article in articles:
        if not article.text.strip():
            raise ApiError(400, "Invalid article", "Each article must have a text field")
        if len(article.text) > MAX_ARTICLE_LENGTH:
            raise ApiError(
                400,
                "Article too long",
                f"Each article text must be less than {MAX_ARTICLE_LENGTH} characters",
            )

    async def analyze_one(index: int, article: BatchArticle) -> dict[str, Any]:
        try:
            payload, cached = await analyze_cached(container, article.text, article.symbol)
        except Exception as e:
            logger.error("batch_item_failed", index=index, error=str(e))
            return {
                "index": index,
                "error": "Analysis failed",
                "sentiment": "neutral",
                "confidence": 0,
                "reasoning": "Failed to analyze",
            }
        return {"index": index, **payload, "cached": cached}

    results = await asyncio.gather(*(analyze_one(i, a) for i, a in enumerate(articles)))

    return {
        "results": results,
        "total": len(articles),
        "successful": sum(1 for r in results if "error" not in r),
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health")
async def sentiment_health(container: Container) -> dict[str, Any]:
    """Report text model connectivity.

    Sentiment keeps working from keywords when the model is unreachable,
    so a disconnected model is reported as degraded rather than an error.
    """
    connected = await container.analyzer.check_connection()
    return {
        "status": "healthy" if connected else "degraded",
        "service": "sentiment-analysis",
        "textModel": "connected" if connected else "disconnected",
        "fallback": None if connected else "keyword",
        "timestamp": datetime.now(UTC).isoformat(),
    }
