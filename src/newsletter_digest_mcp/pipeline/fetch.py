import asyncio
import random

from pydantic import Field

from newsletter_digest_mcp.clients.extract.article import ArticleExtractor
from newsletter_digest_mcp.clients.fetch.base import BaseFetchClient
from newsletter_digest_mcp.models.scrape import ArticleScrape, FailedArticle, ScrapedArticle
from newsletter_digest_mcp.utils.logging import BASE_LOGGER
from newsletter_digest_mcp.utils.models import BaseDigestArbitraryModel

logger = BASE_LOGGER.getChild(__name__)


class ArticleFetcher(BaseDigestArbitraryModel):
    """Fetches one article page, pausing a random moment before every attempt, and extracts its readable text."""

    fetch_client: BaseFetchClient
    extractor: ArticleExtractor = Field(default_factory=ArticleExtractor)

    max_attempts: int = Field(default=2, ge=1)

    delay_range_ms: tuple[int, int] = (500, 1500)
    """The random delay before each attempt is drawn from this range and doubled on retries."""

    def random_delay(self) -> float:
        low, high = self.delay_range_ms
        return random.uniform(low, high) / 1000  # noqa: S311

    async def fetch(self, url: str) -> ArticleScrape:
        last_error: str = "Scraping failed"

        for attempt in range(1, self.max_attempts + 1):
            delay = self.random_delay() * (2 if attempt > 1 else 1)

            if delay > 0:
                await asyncio.sleep(delay)

            logger.info(f"Scraping {url} (attempt {attempt}/{self.max_attempts})")

            try:
                html = await self.fetch_client.fetch(url)
                page = self.extractor.extract(html, url=url)
            except Exception as e:
                last_error = str(e) or type(e).__name__
                logger.warning(f"Attempt {attempt}/{self.max_attempts} for {url} failed: {last_error}")
                continue

            return ScrapedArticle(
                url=url,
                title=page.metadata.title,
                author=page.metadata.author,
                description=page.metadata.description,
                content=page.content,
                content_preview=page.preview,
                word_count=page.word_count,
            )

        logger.info(f"Failed to scrape {url}: {last_error}")

        return FailedArticle(url=url, error=last_error)
