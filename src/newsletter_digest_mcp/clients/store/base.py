from abc import ABC, abstractmethod

from newsletter_digest_mcp.models.pipeline import ProcessingRecord, StageRecord
from newsletter_digest_mcp.models.scrape import ScrapedHeadlineResult
from newsletter_digest_mcp.models.search import SearchResult
from newsletter_digest_mcp.models.summary import SummaryResult


class BaseResultStore(ABC):
    """Persists each stage's bulk output for an email, keyed by message id and user id."""

    @abstractmethod
    async def save_headlines(self, headlines: list[str], message_id: str, user_id: str) -> StageRecord[str]: ...

    @abstractmethod
    async def save_search_results(self, results: list[SearchResult], message_id: str, user_id: str) -> StageRecord[SearchResult]: ...

    @abstractmethod
    async def save_scraped_results(
        self, results: list[ScrapedHeadlineResult], message_id: str, user_id: str
    ) -> StageRecord[ScrapedHeadlineResult]: ...

    @abstractmethod
    async def save_summaries(self, summaries: list[SummaryResult], message_id: str, user_id: str) -> StageRecord[SummaryResult]: ...

    @abstractmethod
    async def get_processing_data(self, message_id: str) -> ProcessingRecord | None: ...


def headline_record(headlines: list[str], message_id: str, user_id: str) -> StageRecord[str]:
    return StageRecord[str](message_id=message_id, user_id=user_id, data=headlines, total=len(headlines), successful=len(headlines))


def search_record(results: list[SearchResult], message_id: str, user_id: str) -> StageRecord[SearchResult]:
    return StageRecord[SearchResult](
        message_id=message_id,
        user_id=user_id,
        data=results,
        total=len(results),
        successful=sum(1 for result in results if result.success),
    )


def scrape_record(results: list[ScrapedHeadlineResult], message_id: str, user_id: str) -> StageRecord[ScrapedHeadlineResult]:
    return StageRecord[ScrapedHeadlineResult](
        message_id=message_id,
        user_id=user_id,
        data=results,
        total=len(results),
        successful=sum(1 for result in results if result.scraped_articles),
    )


def summary_record(summaries: list[SummaryResult], message_id: str, user_id: str) -> StageRecord[SummaryResult]:
    return StageRecord[SummaryResult](
        message_id=message_id,
        user_id=user_id,
        data=summaries,
        total=len(summaries),
        successful=sum(1 for summary in summaries if summary.success),
    )
