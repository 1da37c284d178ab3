from pydantic import Field

from newsletter_digest_mcp.utils.models import BaseDigestModel

NO_ARTICLES_REASON = "No articles to analyze"
NO_RELEVANT_CONTENT_REASON = "No relevant content found in scraped articles"


class SourceArticle(BaseDigestModel):
    """The article a summary was written from."""

    url: str
    title: str | None = None

    article_index: int = Field(ge=1)
    """The 1-based position of the article within the headline's scraped articles."""

    total_articles_checked: int = Field(ge=1)


class SummaryResult(BaseDigestModel):
    """The summary for one headline, or the reason there is none."""

    headline: str
    success: bool
    summary: str | None = None
    word_count: int | None = None
    source_article: SourceArticle | None = None
    reason: str | None = None
    total_articles_checked: int | None = None


class SummaryBatch(BaseDigestModel):
    summaries: list[SummaryResult]
    success_count: int
    failure_count: int
    processing_time_ms: int


class RelevanceVerdict(BaseDigestModel):
    """The model's answer for one headline and article pair."""

    relevant: bool
    summary: str | None = None
    word_count: int | None = None
    error: str | None = None
