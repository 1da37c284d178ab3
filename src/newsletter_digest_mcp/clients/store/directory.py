import asyncio
from pathlib import Path
from typing import Any, override

import yaml
from pydantic import ValidationError

from newsletter_digest_mcp.clients.store.base import BaseResultStore, headline_record, scrape_record, search_record, summary_record
from newsletter_digest_mcp.errors import StoreError
from newsletter_digest_mcp.models.pipeline import ProcessingRecord, StageRecord
from newsletter_digest_mcp.models.scrape import ScrapedHeadlineResult
from newsletter_digest_mcp.models.search import SearchResult
from newsletter_digest_mcp.models.summary import SummaryResult
from newsletter_digest_mcp.utils.logging import BASE_LOGGER

logger = BASE_LOGGER.getChild(__name__)

STAGE_TYPES: dict[str, type[StageRecord[Any]]] = {
    "headlines": StageRecord[str],
    "search_results": StageRecord[SearchResult],
    "scraped_results": StageRecord[ScrapedHeadlineResult],
    "summaries": StageRecord[SummaryResult],
}


class DirectoryResultStore(BaseResultStore):
    """Writes one YAML document per stage to `<root>/<message_id>/<stage>.yaml`."""

    def __init__(self, root: Path):
        self.root = root

    def _stage_path(self, message_id: str, stage: str) -> Path:
        if not message_id or Path(message_id).name != message_id:
            msg = f"Invalid message id {message_id!r}"
            raise StoreError(msg)

        return self.root / message_id / f"{stage}.yaml"

    def _write(self, path: Path, record: StageRecord[Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(record.model_dump(mode="json"), sort_keys=False, allow_unicode=True))

    async def _save[RecordType: StageRecord[Any]](self, stage: str, record: RecordType) -> RecordType:
        path = self._stage_path(record.message_id, stage)

        try:
            await asyncio.to_thread(self._write, path, record)
        except OSError as e:
            msg = f"Error saving {stage} for message {record.message_id}: {e}"
            raise StoreError(msg) from e

        logger.info(f"Saved {record.total} {stage} ({record.successful} successful) for message {record.message_id}")

        return record

    @override
    async def save_headlines(self, headlines: list[str], message_id: str, user_id: str) -> StageRecord[str]:
        return await self._save("headlines", headline_record(headlines, message_id=message_id, user_id=user_id))

    @override
    async def save_search_results(self, results: list[SearchResult], message_id: str, user_id: str) -> StageRecord[SearchResult]:
        return await self._save("search_results", search_record(results, message_id=message_id, user_id=user_id))

    @override
    async def save_scraped_results(
        self, results: list[ScrapedHeadlineResult], message_id: str, user_id: str
    ) -> StageRecord[ScrapedHeadlineResult]:
        return await self._save("scraped_results", scrape_record(results, message_id=message_id, user_id=user_id))

    @override
    async def save_summaries(self, summaries: list[SummaryResult], message_id: str, user_id: str) -> StageRecord[SummaryResult]:
        return await self._save("summaries", summary_record(summaries, message_id=message_id, user_id=user_id))

    def _read(self, message_id: str) -> ProcessingRecord | None:
        if not (self.root / message_id).is_dir():
            return None

        stages: dict[str, StageRecord[Any]] = {}

        for stage, record_type in STAGE_TYPES.items():
            path = self._stage_path(message_id, stage)

            if not path.exists():
                continue

            try:
                stages[stage] = record_type.model_validate(yaml.safe_load(path.read_text()))
            except (yaml.YAMLError, ValidationError) as e:
                msg = f"Stored {stage} for message {message_id} are unreadable: {e}"
                raise StoreError(msg) from e

        return ProcessingRecord(message_id=message_id, **stages)

    @override
    async def get_processing_data(self, message_id: str) -> ProcessingRecord | None:
        _ = self._stage_path(message_id, "headlines")

        return await asyncio.to_thread(self._read, message_id)
