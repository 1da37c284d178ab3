import asyncio
from typing import Any

from newsletter_digest_mcp.clients.completion.base import BaseCompletionClient
from newsletter_digest_mcp.clients.extract.article import ArticleExtractor
from newsletter_digest_mcp.clients.fetch.base import BaseFetchClient
from newsletter_digest_mcp.clients.mail.base import BaseMailClient
from newsletter_digest_mcp.clients.search.base import BaseSearchClient
from newsletter_digest_mcp.clients.store.base import BaseResultStore
from newsletter_digest_mcp.models.pipeline import Newsletter, PipelineRunReport, ProcessedNewsletter, SummaryStatistics
from newsletter_digest_mcp.models.scrape import ScrapeStatistics
from newsletter_digest_mcp.models.search import SearchStatistics
from newsletter_digest_mcp.pipeline.fetch import ArticleFetcher
from newsletter_digest_mcp.pipeline.headlines import DEFAULT_INSTRUCTIONS, HeadlineExtractor
from newsletter_digest_mcp.pipeline.ratelimit import CallSpacer
from newsletter_digest_mcp.pipeline.scrape import ScrapeOrchestrator
from newsletter_digest_mcp.pipeline.search import ParallelSearchOrchestrator
from newsletter_digest_mcp.pipeline.summarize import RelevanceSummarizer
from newsletter_digest_mcp.settings import PipelineSettings
from newsletter_digest_mcp.utils.iterators import chunk
from newsletter_digest_mcp.utils.logging import BASE_LOGGER
from newsletter_digest_mcp.utils.models import BaseDigestArbitraryModel
from newsletter_digest_mcp.utils.timer import Timer

logger = BASE_LOGGER.getChild(__name__)


class PipelineCoordinator(BaseDigestArbitraryModel):
    """Runs extract -> search -> scrape -> summarize for each email, saving every stage as it completes."""

    settings: PipelineSettings
    headline_extractor: HeadlineExtractor
    search_orchestrator: ParallelSearchOrchestrator
    scrape_orchestrator: ScrapeOrchestrator
    summarizer: RelevanceSummarizer
    store: BaseResultStore | None = None
    mail_client: BaseMailClient | None = None

    @classmethod
    def build(
        cls,
        settings: PipelineSettings,
        search_client: BaseSearchClient,
        fetch_client: BaseFetchClient,
        completion_client: BaseCompletionClient,
        store: BaseResultStore | None = None,
        mail_client: BaseMailClient | None = None,
        call_spacer: CallSpacer | None = None,
        extractor: ArticleExtractor | None = None,
        headline_instructions: str = DEFAULT_INSTRUCTIONS,
    ) -> "PipelineCoordinator":
        """Wire the stages together from collaborators and settings."""

        return cls(
            settings=settings,
            headline_extractor=HeadlineExtractor(completion_client=completion_client, instructions=headline_instructions),
            search_orchestrator=ParallelSearchOrchestrator(search_client=search_client, category=settings.search_category),
            scrape_orchestrator=ScrapeOrchestrator(
                fetcher=ArticleFetcher(
                    fetch_client=fetch_client,
                    extractor=extractor or ArticleExtractor(),
                    max_attempts=settings.fetch_max_attempts,
                    delay_range_ms=settings.fetch_delay_range_ms,
                ),
                batch_size=settings.scrape_batch_size,
            ),
            summarizer=RelevanceSummarizer(
                completion_client=completion_client,
                call_spacer=call_spacer or CallSpacer.from_milliseconds(settings.summarizer_min_interval_ms),
            ),
            store=store,
            mail_client=mail_client,
        )

    async def process_newsletter(self, newsletter: Newsletter) -> ProcessedNewsletter:
        """Process one email. Errors are recorded on the result, and whatever was produced before them is kept."""

        timer = Timer(name=newsletter.message_id)
        progress: dict[str, Any] = {}

        logger.info(f"Processing {newsletter.subject!r} ({newsletter.message_id})")

        try:
            await self._run_stages(newsletter, progress)
        except Exception as e:
            logger.exception(f"Error processing {newsletter.subject!r} ({newsletter.message_id})")
            progress["processing_error"] = str(e) or type(e).__name__

        processing_time_ms = timer.stop().duration_ms

        logger.info(f"Processed {newsletter.message_id} in {processing_time_ms}ms")

        return ProcessedNewsletter(
            message_id=newsletter.message_id,
            user_id=newsletter.user_id,
            subject=newsletter.subject,
            processing_time_ms=processing_time_ms,
            **progress,  # pyright: ignore[reportAny]
        )

    async def _run_stages(self, newsletter: Newsletter, progress: dict[str, Any]) -> None:
        message_id, user_id = newsletter.message_id, newsletter.user_id
        settings = self.settings

        extraction = await self.headline_extractor.extract(body=newsletter.body, subject=newsletter.subject, sender=newsletter.sender)

        headlines = extraction.headlines if extraction.success else []
        progress["headlines"] = headlines
        progress["headline_extraction_error"] = extraction.error

        if self.store is not None:
            _ = await self.store.save_headlines(headlines, message_id=message_id, user_id=user_id)

        if not headlines:
            logger.info(f"No headlines found in {newsletter.message_id}")
            return

        search_batch = await self.search_orchestrator.search_all(
            headlines,
            results_per_headline=settings.results_per_headline,
            max_parallel=settings.max_parallel_searches,
            stagger_delay_ms=settings.search_stagger_delay_ms,
        )
        progress["search_results"] = search_batch.results
        progress["search_statistics"] = SearchStatistics.from_results(search_batch.results)

        if self.store is not None:
            _ = await self.store.save_search_results(search_batch.results, message_id=message_id, user_id=user_id)

        scraped_results = await self.scrape_orchestrator.scrape_all(
            search_batch.results,
            urls_per_headline=settings.urls_per_headline,
            max_parallel=settings.max_parallel_scrapes,
        )
        progress["scraped_results"] = scraped_results
        progress["scrape_statistics"] = ScrapeStatistics.from_results(scraped_results)

        if self.store is not None:
            _ = await self.store.save_scraped_results(scraped_results, message_id=message_id, user_id=user_id)

        summary_batch = await self.summarizer.summarize_all(scraped_results)
        progress["summaries"] = summary_batch.summaries
        progress["summary_statistics"] = SummaryStatistics(
            total_summaries=len(summary_batch.summaries),
            successful_summaries=summary_batch.success_count,
            failed_summaries=summary_batch.failure_count,
        )

        if self.store is not None:
            _ = await self.store.save_summaries(summary_batch.summaries, message_id=message_id, user_id=user_id)

        if self.mail_client is not None and newsletter.sender_email:
            await self.mail_client.send_notification(recipient=newsletter.sender_email, link=settings.results_link(message_id))
            progress["notified"] = True

    async def process_newsletters(self, newsletters: list[Newsletter]) -> PipelineRunReport:
        """Process emails in batches: concurrently within a batch, one batch after another."""

        timer = Timer(name="run")
        results: list[ProcessedNewsletter] = []

        batches = list(chunk(newsletters, self.settings.email_batch_size))

        for batch_number, batch in enumerate(batches, start=1):
            logger.info(f"Processing email batch {batch_number}/{len(batches)} ({len(batch)} emails)")

            batch_results: list[ProcessedNewsletter] = await asyncio.gather(*[self.process_newsletter(newsletter) for newsletter in batch])

            results.extend(batch_results)

        report = PipelineRunReport.from_results(results, total_processing_time_ms=timer.stop().duration_ms)

        logger.info(
            f"Processed {report.processed} emails with {report.total_headlines} headlines in {report.total_processing_time_ms}ms "
            f"({report.failed_emails} failed)"
        )

        return report

    async def run(self) -> PipelineRunReport:
        """Fetch newsletters from the mail collaborator and process them."""

        if self.mail_client is None:
            msg = "A mail client is required to fetch newsletters"
            raise ValueError(msg)

        newsletters = await self.mail_client.fetch_newsletters()

        if not newsletters:
            logger.info("No new newsletters found")
            return PipelineRunReport()

        return await self.process_newsletters(newsletters)
