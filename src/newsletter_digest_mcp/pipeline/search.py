import asyncio

from pydantic import Field

from newsletter_digest_mcp.clients.search.base import BaseSearchClient
from newsletter_digest_mcp.models.search import SearchBatch, SearchResult
from newsletter_digest_mcp.utils.iterators import chunk
from newsletter_digest_mcp.utils.logging import BASE_LOGGER
from newsletter_digest_mcp.utils.models import BaseDigestArbitraryModel
from newsletter_digest_mcp.utils.timer import Timer

logger = BASE_LOGGER.getChild(__name__)


class ParallelSearchOrchestrator(BaseDigestArbitraryModel):
    """Searches for every headline of an email in chunks of concurrent, staggered requests."""

    search_client: BaseSearchClient

    category: str = Field(default="general")
    """The search category passed to the client."""

    async def _search_one(self, headline: str, results_per_headline: int, start_delay: float) -> SearchResult:
        if start_delay > 0:
            await asyncio.sleep(start_delay)

        try:
            return await self.search_client.search(headline, result_count=results_per_headline, category=self.category)
        except Exception as e:
            logger.exception(f"Unexpected error searching for {headline!r}")
            return SearchResult.failed(headline=headline, error=str(e) or type(e).__name__)

    async def search_all(
        self,
        headlines: list[str],
        results_per_headline: int = 4,
        max_parallel: int = 5,
        stagger_delay_ms: int = 200,
    ) -> SearchBatch:
        """Search every headline, returning results in headline order.

        Chunks of `max_parallel` headlines run one after another. Inside a chunk the i-th search starts
        `i * stagger_delay_ms` after the chunk, and the next chunk waits for every search of the current one.
        With `max_parallel=1` the stagger delay becomes the delay between consecutive searches."""

        timer = Timer(name="search")
        stagger = stagger_delay_ms / 1000

        results: list[SearchResult] = []
        success_count = 0
        failure_count = 0

        chunks = list(chunk(headlines, max_parallel))

        for chunk_number, headline_chunk in enumerate(chunks, start=1):
            if chunk_number > 1 and stagger > 0:
                await asyncio.sleep(stagger)

            logger.info(f"Searching chunk {chunk_number}/{len(chunks)} ({len(headline_chunk)} headlines)")

            chunk_results: list[SearchResult] = await asyncio.gather(
                *[
                    self._search_one(headline, results_per_headline=results_per_headline, start_delay=index * stagger)
                    for index, headline in enumerate(headline_chunk)
                ]
            )

            for result in chunk_results:
                if result.success:
                    success_count += 1
                else:
                    failure_count += 1

            results.extend(chunk_results)

        finished = timer.stop()

        logger.info(f"Searched {len(headlines)} headlines: {success_count} succeeded, {failure_count} failed in {finished.duration:.2f}s")

        return SearchBatch(
            results=results,
            success_count=success_count,
            failure_count=failure_count,
            total_time_ms=finished.duration_ms,
        )
