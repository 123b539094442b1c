"""Generated market news.

This module contains:
- NewsService: concurrent article generation with template fallback
- NewsArticle, NewsCategory and Impact models
"""

from stockpulse.news.models import NEWS_SOURCE, Impact, NewsArticle, NewsCategory
from stockpulse.news.service import (
    CATEGORY_PROMPTS,
    TEMPLATES,
    NewsService,
    parse_article,
    template_article,
)

__all__ = [
    "NewsService",
    "parse_article",
    "template_article",
    "CATEGORY_PROMPTS",
    "TEMPLATES",
    "NEWS_SOURCE",
    "Impact",
    "NewsArticle",
    "NewsCategory",
]
