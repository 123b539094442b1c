"""News synthesis with template fallback.

NewsService asks the text model for short market news articles. Each
article is generated independently and concurrently; an article whose
generation or parsing fails is replaced with a canned template for its
category, so a request always yields the number of articles asked for.
"""

import asyncio
import time
from dataclasses import dataclass

import structlog

from stockpulse.data.models import DataSource
from stockpulse.news.models import Impact, NewsArticle, NewsCategory
from stockpulse.resilience.degradation import (
    ComponentType,
    DegradationLevel,
    DegradedResponse,
    with_fallback,
)
from stockpulse.sentiment.analyzer import SentimentAnalyzer, coerce_enum, extract_json_block
from stockpulse.sentiment.models import Sentiment

logger = structlog.get_logger(__name__)

MAX_RELATED_SYMBOLS = 10
TEMPLATE_NOTE = "Text model unavailable; showing template news"

CATEGORY_PROMPTS: dict[NewsCategory, str] = {
    NewsCategory.MARKET: (
        "Generate a realistic stock market news article about current market conditions, "
        "trends, or major market movements. Include specific details about indices, "
        "sectors, and market sentiment."
    ),
    NewsCategory.TECH: (
        "Generate a technology sector news article about a major tech company, innovation, "
        "or industry development that would impact stock prices. Focus on companies like "
        "Apple, Microsoft, Google, Meta, Tesla, etc."
    ),
    NewsCategory.CRYPTO: (
        "Generate a cryptocurrency and blockchain technology news article that would impact "
        "crypto-related stocks and the broader financial market."
    ),
    NewsCategory.ECONOMY: (
        "Generate an economic news article about inflation, interest rates, GDP, employment, "
        "or other macroeconomic factors that impact the stock market."
    ),
    NewsCategory.EARNINGS: (
        "Generate an earnings-related news article about a major company's quarterly results, "
        "guidance, or analyst updates that would move stock prices."
    ),
    NewsCategory.BREAKING: (
        "Generate a breaking financial news article about a significant event, merger, "
        "acquisition, regulatory change, or unexpected development in the financial markets."
    ),
}

ARTICLE_FORMAT = """Please format your response as a JSON object with the following structure:
{
  "headline": "Clear, engaging headline (60-80 characters)",
  "summary": "Brief 2-3 sentence summary",
  "content": "Full article content (200-300 words)",
  "sentiment": "positive|negative|neutral",
  "impact": "high|medium|low",
  "relatedSymbols": ["SYMBOL1", "SYMBOL2"] (if applicable)
}

Requirements:
- Make it realistic and current
- Include specific numbers, percentages, or data points
- Mention relevant companies or economic indicators
- Ensure the content is factual-sounding but clearly generated
- Keep it professional and news-like in tone"""


@dataclass(frozen=True)
class ArticleTemplate:
    """Canned article served when generation fails."""

    headline: str
    summary: str
    content: str
    symbols: tuple[str, ...]


TEMPLATES: dict[NewsCategory, ArticleTemplate] = {
    NewsCategory.MARKET: ArticleTemplate(
        headline="Stock Markets Show Mixed Performance Amid Economic Uncertainty",
        summary=(
            "Major indices showed mixed performance today as investors weighed economic data "
            "and corporate earnings reports."
        ),
        content=(
            "Stock markets displayed mixed signals today as investors processed a combination "
            "of economic data releases and corporate earnings reports. The broader market "
            "sentiment remains cautiously optimistic despite ongoing concerns about inflation "
            "and interest rate policies. Trading volumes were moderate across major exchanges."
        ),
        symbols=("SPY", "QQQ", "DIA"),
    ),
    NewsCategory.TECH: ArticleTemplate(
        headline="Technology Sector Continues Innovation Drive Despite Headwinds",
        summary=(
            "Technology companies continue to drive innovation while navigating challenging "
            "market conditions and regulatory scrutiny."
        ),
        content=(
            "The technology sector continues to demonstrate resilience amid challenging market "
            "conditions. Major tech companies are focusing on artificial intelligence "
            "innovations and cloud computing solutions. Investors remain interested in "
            "companies with strong fundamentals and growth prospects."
        ),
        symbols=("AAPL", "MSFT", "GOOGL", "META"),
    ),
    NewsCategory.CRYPTO: ArticleTemplate(
        headline="Cryptocurrency Markets Experience Volatility Amid Regulatory Changes",
        summary=(
            "Digital asset markets experienced significant price movements following "
            "regulatory announcements and institutional developments."
        ),
        content=(
            "Cryptocurrency markets experienced notable volatility following recent regulatory "
            "developments and institutional announcements. Bitcoin and Ethereum showed "
            "significant price movements as traders reacted to policy changes and adoption "
            "news from major financial institutions."
        ),
        symbols=("COIN", "MSTR", "RIOT"),
    ),
    NewsCategory.ECONOMY: ArticleTemplate(
        headline="Economic Indicators Point to Continued Market Resilience",
        summary=(
            "Latest economic data suggests continued resilience in key sectors despite ongoing "
            "global uncertainties."
        ),
        content=(
            "Recent economic indicators suggest continued strength in key sectors of the "
            "economy. Employment data, consumer spending, and business investment metrics all "
            "point to underlying economic resilience despite global uncertainties and "
            "geopolitical tensions."
        ),
        symbols=("SPY", "TLT", "GLD"),
    ),
    NewsCategory.EARNINGS: ArticleTemplate(
        headline="Corporate Earnings Season Reveals Mixed Results Across Sectors",
        summary=(
            "Companies across various sectors reported quarterly results that met or exceeded "
            "analyst expectations."
        ),
        content=(
            "The current earnings season has revealed a mixed picture across different "
            "sectors. While some companies exceeded analyst expectations, others faced "
            "challenges from supply chain issues and changing consumer demand patterns. "
            "Overall corporate profitability remains stable."
        ),
        symbols=("AAPL", "TSLA", "AMZN"),
    ),
    NewsCategory.BREAKING: ArticleTemplate(
        headline="Financial Markets React to Latest Economic Development",
        summary=(
            "A significant development in the financial markets has prompted investor "
            "attention and market response."
        ),
        content=(
            "A significant development in the financial markets has captured investor "
            "attention today. Market participants are closely monitoring the situation and "
            "its potential implications for various asset classes and trading strategies."
        ),
        symbols=("SPY", "VIX"),
    ),
}


def build_article_prompt(category: NewsCategory) -> str:
    """Build the generation prompt for a category."""
    return f"{CATEGORY_PROMPTS[category]}\n\n{ARTICLE_FORMAT}"


def template_article(category: NewsCategory, index: int, timestamp_ms: int) -> NewsArticle:
    """Build the canned fallback article for a category."""
    template = TEMPLATES[category]
    return NewsArticle(
        id=f"fallback_{timestamp_ms}_{index}",
        headline=template.headline,
        summary=template.summary,
        content=template.content,
        category=category,
        sentiment=Sentiment.NEUTRAL,
        impact=Impact.MEDIUM,
        related_symbols=list(template.symbols),
    )


def parse_article(
    reply: str,
    category: NewsCategory,
    index: int,
    timestamp_ms: int,
) -> NewsArticle:
    """Build a NewsArticle from a model reply.

    Missing text fields get generic defaults; invalid sentiment and impact
    values fall back to neutral and medium.

    Raises:
        TextModelError: If the reply holds no JSON object.
    """
    data = extract_json_block(reply)
    symbols = data.get("relatedSymbols", data.get("related_symbols"))
    if not isinstance(symbols, list):
        symbols = []

    return NewsArticle(
        id=f"news_{timestamp_ms}_{index}",
        headline=str(data.get("headline") or "Market Update"),
        summary=str(data.get("summary") or "Market news summary"),
        content=str(data.get("content") or "Market news content"),
        category=category,
        sentiment=coerce_enum(data.get("sentiment"), Sentiment, Sentiment.NEUTRAL),
        impact=coerce_enum(data.get("impact"), Impact, Impact.MEDIUM),
        related_symbols=[str(s).upper() for s in symbols[:MAX_RELATED_SYMBOLS] if s],
    )


class NewsService:
    """Generates category news with the text model.

    Example:
        service = NewsService(SentimentAnalyzer())
        response = await service.generate(NewsCategory.TECH, count=3)
        for article in response.result:
            print(article.headline)
    """

    def __init__(self, analyzer: SentimentAnalyzer) -> None:
        """Initialize the news service.

        Args:
            analyzer: Text model client used for generation.
        """
        self._analyzer = analyzer
        self._logger = logger.bind(component="news_service")

    async def _generate_one(
        self,
        category: NewsCategory,
        index: int,
        timestamp_ms: int,
    ) -> DegradedResponse[NewsArticle]:
        """Generate one article, substituting the template on failure."""

        async def ask_model() -> NewsArticle:
            reply = await self._analyzer.generate_content(build_article_prompt(category))
            return parse_article(reply, category, index, timestamp_ms)

        return await with_fallback(
            ask_model,
            lambda: template_article(category, index, timestamp_ms),
            component=ComponentType.TEXT_MODEL,
            level=DegradationLevel.TEMPLATE_DATA,
            primary_source=DataSource.TEXT_MODEL.value,
            fallback_source=DataSource.TEMPLATE.value,
            note=TEMPLATE_NOTE,
            manager=self._analyzer.degradation,
        )

    async def generate(
        self,
        category: NewsCategory | str,
        count: int = 1,
    ) -> DegradedResponse[list[NewsArticle]]:
        """Generate articles for a category.

        Args:
            category: News category.
            count: Number of articles to generate.

        Returns:
            DegradedResponse with exactly `count` articles. The response is
            degraded if any article came from a template.

        Raises:
            ValueError: If the category is unknown.
        """
        category = NewsCategory(category)
        count = max(0, count)
        timestamp_ms = int(time.time() * 1000)

        results = await asyncio.gather(
            *(self._generate_one(category, i, timestamp_ms) for i in range(count))
        )

        articles = [r.result for r in results]
        fallbacks = sum(1 for r in results if r.is_degraded())

        self._logger.info(
            "news_generated",
            category=category.value,
            count=len(articles),
            fallbacks=fallbacks,
        )

        if fallbacks:
            return DegradedResponse(
                result=articles,
                degradation_level=DegradationLevel.TEMPLATE_DATA,
                source=DataSource.TEMPLATE.value,
                warnings=[TEMPLATE_NOTE],
            )
        return DegradedResponse(result=articles, source=DataSource.TEXT_MODEL.value)
