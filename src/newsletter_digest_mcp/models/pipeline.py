from datetime import UTC, datetime

from pydantic import Field

from newsletter_digest_mcp.models.scrape import ScrapedHeadlineResult, ScrapeStatistics
from newsletter_digest_mcp.models.search import SearchResult, SearchStatistics
from newsletter_digest_mcp.models.summary import SummaryResult
from newsletter_digest_mcp.utils.models import BaseDigestModel


class Newsletter(BaseDigestModel):
    """A forwarded newsletter email handed to the pipeline by the mail collaborator."""

    message_id: str
    user_id: str
    subject: str = ""

    sender: str = ""
    """The display name or address the newsletter was forwarded from."""

    sender_email: str | None = None
    """The address the results link is sent to."""

    body: str
    received_at: datetime | None = None


class HeadlineExtraction(BaseDigestModel):
    success: bool
    headlines: list[str] = Field(default_factory=list)
    raw_response: str | None = None
    error: str | None = None
    extracted_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))


class SummaryStatistics(BaseDigestModel):
    total_summaries: int = 0
    successful_summaries: int = 0
    failed_summaries: int = 0


class ProcessedNewsletter(BaseDigestModel):
    """Everything the pipeline produced for one email, including partial results on failure."""

    message_id: str
    user_id: str
    subject: str = ""
    headlines: list[str] = Field(default_factory=list)
    headline_extraction_error: str | None = None
    search_results: list[SearchResult] = Field(default_factory=list)
    scraped_results: list[ScrapedHeadlineResult] = Field(default_factory=list)
    summaries: list[SummaryResult] = Field(default_factory=list)
    search_statistics: SearchStatistics = Field(default_factory=SearchStatistics)
    scrape_statistics: ScrapeStatistics = Field(default_factory=ScrapeStatistics)
    summary_statistics: SummaryStatistics = Field(default_factory=SummaryStatistics)
    notified: bool = False
    processing_error: str | None = None
    processed_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    processing_time_ms: int = 0


class PipelineRunReport(BaseDigestModel):
    processed: int = 0
    results: list[ProcessedNewsletter] = Field(default_factory=list)
    total_headlines: int = 0
    total_searches: int = 0
    successful_searches: int = 0
    successful_scrapes: int = 0
    successful_summaries: int = 0
    failed_emails: int = 0
    total_processing_time_ms: int = 0

    @classmethod
    def from_results(cls, results: list[ProcessedNewsletter], total_processing_time_ms: int) -> "PipelineRunReport":
        return cls(
            processed=len(results),
            results=results,
            total_headlines=sum(len(result.headlines) for result in results),
            total_searches=sum(result.search_statistics.total_headlines for result in results),
            successful_searches=sum(result.search_statistics.successful_searches for result in results),
            successful_scrapes=sum(result.scrape_statistics.successful_scrapes for result in results),
            successful_summaries=sum(result.summary_statistics.successful_summaries for result in results),
            failed_emails=sum(1 for result in results if result.processing_error is not None),
            total_processing_time_ms=total_processing_time_ms,
        )


class StageRecord[DataType](BaseDigestModel):
    """One stage's bulk output as persisted for an email."""

    message_id: str
    user_id: str
    data: list[DataType]
    total: int
    successful: int
    saved_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))


class ProcessingRecord(BaseDigestModel):
    """All persisted stage outputs of one email, joined by message id."""

    message_id: str
    headlines: StageRecord[str] | None = None
    search_results: StageRecord[SearchResult] | None = None
    scraped_results: StageRecord[ScrapedHeadlineResult] | None = None
    summaries: StageRecord[SummaryResult] | None = None
