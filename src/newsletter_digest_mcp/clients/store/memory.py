from typing import Any, override

from newsletter_digest_mcp.clients.store.base import BaseResultStore, headline_record, scrape_record, search_record, summary_record
from newsletter_digest_mcp.models.pipeline import ProcessingRecord, StageRecord
from newsletter_digest_mcp.models.scrape import ScrapedHeadlineResult
from newsletter_digest_mcp.models.search import SearchResult
from newsletter_digest_mcp.models.summary import SummaryResult


class MemoryResultStore(BaseResultStore):
    """Keeps stage outputs in memory for the life of the process."""

    def __init__(self):
        self.records: dict[str, ProcessingRecord] = {}

    def _update(self, message_id: str, **stages: StageRecord[Any]) -> None:
        record = self.records.get(message_id) or ProcessingRecord(message_id=message_id)
        self.records[message_id] = record.model_copy(update=stages)

    @override
    async def save_headlines(self, headlines: list[str], message_id: str, user_id: str) -> StageRecord[str]:
        record = headline_record(headlines, message_id=message_id, user_id=user_id)
        self._update(message_id, headlines=record)
        return record

    @override
    async def save_search_results(self, results: list[SearchResult], message_id: str, user_id: str) -> StageRecord[SearchResult]:
        record = search_record(results, message_id=message_id, user_id=user_id)
        self._update(message_id, search_results=record)
        return record

    @override
    async def save_scraped_results(
        self, results: list[ScrapedHeadlineResult], message_id: str, user_id: str
    ) -> StageRecord[ScrapedHeadlineResult]:
        record = scrape_record(results, message_id=message_id, user_id=user_id)
        self._update(message_id, scraped_results=record)
        return record

    @override
    async def save_summaries(self, summaries: list[SummaryResult], message_id: str, user_id: str) -> StageRecord[SummaryResult]:
        record = summary_record(summaries, message_id=message_id, user_id=user_id)
        self._update(message_id, summaries=record)
        return record

    @override
    async def get_processing_data(self, message_id: str) -> ProcessingRecord | None:
        return self.records.get(message_id)
