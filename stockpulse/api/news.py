"""Generated news endpoints.

- GET /api/news?category=market&count=5
- GET /api/news/breaking
- GET /api/news/category/{category}?count=3
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Query

from stockpulse.api.dependencies import Container, ServiceContainer
from stockpulse.api.errors import ApiError
from stockpulse.cache.manager import CacheKeyBuilder, CacheType
from stockpulse.news.models import NewsCategory

router = APIRouter(prefix="/api/news", tags=["News"])

MAX_NEWS_COUNT = 10
MAX_CATEGORY_COUNT = 5
BREAKING_COUNT = 3


def parse_category(category: str) -> NewsCategory:
    """Resolve a category name, rejecting unknown ones."""
    try:
        return NewsCategory(category)
    except ValueError:
        raise ApiError(
            400,
            "Invalid category",
            validCategories=NewsCategory.values(),
        ) from None


def clamp_count(count: int, default: int, maximum: int) -> int:
    """Bound a requested article count; non-positive counts use the default."""
    if count <= 0:
        return default
    return min(count, maximum)


async def generate_cached(
    container: ServiceContainer,
    category: NewsCategory,
    count: int,
) -> dict[str, Any]:
    """Generate articles for a category, serving repeats from cache."""
    cache_key = CacheKeyBuilder.news(category.value, count)
    cached = container.cache.get(cache_key)
    if cached is not None:
        return {**cached, "cached": True}

    response = await container.news.generate(category, count)
    payload: dict[str, Any] = {
        "articles": [article.to_json_dict() for article in response.result],
        "source": response.source,
    }
    if response.note:
        payload["note"] = response.note

    container.cache.set(cache_key, payload, cache_type=CacheType.NEWS)
    return {**payload, "cached": False}


def _news_response(payload: dict[str, Any], **fields: Any) -> dict[str, Any]:
    return {
        "success": True,
        **payload,
        **fields,
        "total": len(payload["articles"]),
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("")
async def get_news(
    container: Container,
    category: str = Query(default=NewsCategory.MARKET.value),
    count: int = Query(default=5),
) -> dict[str, Any]:
    """Generate up to 10 articles for a category."""
    resolved = parse_category(category)
    payload = await generate_cached(container, resolved, clamp_count(count, 5, MAX_NEWS_COUNT))
    return _news_response(payload, category=resolved.value)


@router.get("/breaking")
async def get_breaking_news(container: Container) -> dict[str, Any]:
    """Generate three breaking news articles."""
    payload = await generate_cached(container, NewsCategory.BREAKING, BREAKING_COUNT)
    return _news_response(payload, type=NewsCategory.BREAKING.value)


@router.get("/category/{category}")
async def get_news_by_category(
    category: str,
    container: Container,
    count: int = Query(default=3),
) -> dict[str, Any]:
    """Generate up to 5 articles for a category."""
    resolved = parse_category(category)
    payload = await generate_cached(
        container, resolved, clamp_count(count, 3, MAX_CATEGORY_COUNT)
    )
    return _news_response(payload, category=resolved.value)
