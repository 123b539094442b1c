"""News article models."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import Field

from stockpulse.data.models import ApiModel
from stockpulse.sentiment.models import Sentiment

NEWS_SOURCE = "StockPulse AI News"


class NewsCategory(str, Enum):
    """Categories of generated news."""

    MARKET = "market"
    TECH = "tech"
    CRYPTO = "crypto"
    ECONOMY = "economy"
    EARNINGS = "earnings"
    BREAKING = "breaking"

    @classmethod
    def values(cls) -> list[str]:
        """List valid category names."""
        return [c.value for c in cls]


class Impact(str, Enum):
    """Expected market impact of a news item."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NewsArticle(ApiModel):
    """A generated news article.

    Attributes:
        id: Unique article ID.
        headline: Article headline.
        summary: Two or three sentence summary.
        content: Full article body.
        category: News category.
        sentiment: Overall tone.
        timestamp: When the article was generated.
        source: Publishing source name.
        impact: Expected market impact.
        related_symbols: Tickers the article mentions.
    """

    id: str
    headline: str
    summary: str
    content: str
    category: NewsCategory
    sentiment: Sentiment = Sentiment.NEUTRAL
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    source: str = NEWS_SOURCE
    impact: Impact = Impact.MEDIUM
    related_symbols: list[str] = Field(default_factory=list)
