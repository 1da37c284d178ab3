from datetime import UTC, datetime
from typing import Literal

from pydantic import Field

from newsletter_digest_mcp.utils.models import BaseDigestModel


class ScrapedArticle(BaseDigestModel):
    """A page that was fetched and reduced to its readable text."""

    success: Literal[True] = True
    url: str
    title: str | None = None
    author: str | None = None
    description: str | None = None
    content: str
    content_preview: str
    word_count: int
    scraped_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))


class FailedArticle(BaseDigestModel):
    """A page that could not be fetched or parsed."""

    success: Literal[False] = False
    url: str
    error: str
    scraped_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))


type ArticleScrape = ScrapedArticle | FailedArticle


class ScrapedHeadlineResult(BaseDigestModel):
    """The scraped articles for one headline, in the order their URLs were selected."""

    headline: str
    search_success: bool
    total_search_results: int = 0
    scraped_count: int = 0
    scraped_articles: list[ScrapedArticle | FailedArticle] = Field(default_factory=list)


class ScrapeStatistics(BaseDigestModel):
    total_headlines: int = 0
    total_attempted: int = 0
    successful_scrapes: int = 0
    failed_scrapes: int = 0

    @classmethod
    def from_results(cls, results: list[ScrapedHeadlineResult]) -> "ScrapeStatistics":
        attempted = sum(len(result.scraped_articles) for result in results)
        successful = sum(result.scraped_count for result in results)

        return cls(
            total_headlines=len(results),
            total_attempted=attempted,
            successful_scrapes=successful,
            failed_scrapes=attempted - successful,
        )
