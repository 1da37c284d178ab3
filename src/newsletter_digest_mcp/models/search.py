from collections import Counter
from datetime import UTC, datetime

from pydantic import Field

from newsletter_digest_mcp.utils.models import BaseDigestModel


class ArticleRef(BaseDigestModel):
    """A single search hit for a headline."""

    rank: int
    """The 1-based position of the hit in the backend's result list."""

    title: str = Field(min_length=1)
    url: str = Field(min_length=1)

    content: str = ""
    """The snippet returned by the search backend."""

    published_date: str | None = None
    engine: str = "unknown"
    score: float = 0


class SearchResult(BaseDigestModel):
    """The outcome of searching for one headline."""

    headline: str
    query: str | None = None
    success: bool
    results: list[ArticleRef] = Field(default_factory=list)
    total_found: int = 0
    searched_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    error: str | None = None

    @classmethod
    def failed(cls, headline: str, error: str, query: str | None = None) -> "SearchResult":
        return cls(headline=headline, query=query, success=False, error=error)


class SearchBatch(BaseDigestModel):
    """The outcome of searching for every headline of an email."""

    results: list[SearchResult]
    success_count: int
    failure_count: int
    total_time_ms: int


class SearchStatistics(BaseDigestModel):
    total_headlines: int = 0
    successful_searches: int = 0
    failed_searches: int = 0
    total_articles: int = 0
    average_articles_per_headline: float = 0
    engines: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_results(cls, results: list[SearchResult]) -> "SearchStatistics":
        successful = [result for result in results if result.success]
        engines = Counter(article.engine for result in successful for article in result.results)
        total_articles = sum(len(result.results) for result in successful)

        return cls(
            total_headlines=len(results),
            successful_searches=len(successful),
            failed_searches=len(results) - len(successful),
            total_articles=total_articles,
            average_articles_per_headline=round(total_articles / len(successful), 2) if successful else 0,
            engines=dict(engines.most_common()),
        )


class ConnectionCheck(BaseDigestModel):
    success: bool
    url: str
    message: str | None = None
    error: str | None = None
