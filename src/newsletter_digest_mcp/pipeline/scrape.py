import asyncio

from pydantic import Field

from newsletter_digest_mcp.models.scrape import ArticleScrape, FailedArticle, ScrapedHeadlineResult
from newsletter_digest_mcp.models.search import SearchResult
from newsletter_digest_mcp.pipeline.fetch import ArticleFetcher
from newsletter_digest_mcp.utils.iterators import chunk
from newsletter_digest_mcp.utils.logging import BASE_LOGGER
from newsletter_digest_mcp.utils.models import BaseDigestArbitraryModel
from newsletter_digest_mcp.utils.timer import Timer

logger = BASE_LOGGER.getChild(__name__)


class ScrapeOrchestrator(BaseDigestArbitraryModel):
    """Scrapes the top search results of every headline in batches, with one fetch limit shared across a batch."""

    fetcher: ArticleFetcher

    batch_size: int = Field(default=5, ge=1)
    """The number of headlines scraped per batch. Batches run one after another."""

    async def _fetch_limited(self, url: str, limiter: asyncio.Semaphore) -> ArticleScrape:
        async with limiter:
            try:
                return await self.fetcher.fetch(url)
            except Exception as e:
                logger.exception(f"Unexpected error scraping {url}")
                return FailedArticle(url=url, error=str(e) or type(e).__name__)

    async def _scrape_headline(
        self, search_result: SearchResult, urls_per_headline: int, limiter: asyncio.Semaphore
    ) -> ScrapedHeadlineResult:
        if not search_result.success or not search_result.results:
            return ScrapedHeadlineResult(
                headline=search_result.headline,
                search_success=False,
                total_search_results=len(search_result.results),
            )

        urls = [article_ref.url for article_ref in search_result.results[:urls_per_headline]]

        scraped_articles: list[ArticleScrape] = await asyncio.gather(*[self._fetch_limited(url, limiter) for url in urls])
        scraped_count = sum(1 for article in scraped_articles if article.success)

        logger.info(f"Scraped {scraped_count}/{len(scraped_articles)} articles for {search_result.headline!r}")

        return ScrapedHeadlineResult(
            headline=search_result.headline,
            search_success=True,
            total_search_results=len(search_result.results),
            scraped_count=scraped_count,
            scraped_articles=scraped_articles,
        )

    async def scrape_all(
        self,
        search_results: list[SearchResult],
        urls_per_headline: int = 2,
        max_parallel: int = 5,
    ) -> list[ScrapedHeadlineResult]:
        """Scrape the first `urls_per_headline` results of every headline, returning results in headline order."""

        timer = Timer(name="scrape")
        limiter = asyncio.Semaphore(max_parallel)

        results: list[ScrapedHeadlineResult] = []

        batches = list(chunk(search_results, self.batch_size))

        for batch_number, batch in enumerate(batches, start=1):
            logger.info(f"Scraping batch {batch_number}/{len(batches)} ({len(batch)} headlines)")

            batch_results: list[ScrapedHeadlineResult] = await asyncio.gather(
                *[self._scrape_headline(search_result, urls_per_headline=urls_per_headline, limiter=limiter) for search_result in batch]
            )

            results.extend(batch_results)

        total_scraped = sum(result.scraped_count for result in results)
        total_attempted = sum(len(result.scraped_articles) for result in results)

        logger.info(
            f"Scraped {total_scraped}/{total_attempted} articles for {len(results)} headlines in {timer.stop().duration:.2f}s"
        )

        return results
