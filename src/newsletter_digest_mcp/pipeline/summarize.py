from textwrap import dedent

from pydantic import Field

from newsletter_digest_mcp.clients.completion.base import BaseCompletionClient
from newsletter_digest_mcp.models.scrape import ArticleScrape, ScrapedArticle, ScrapedHeadlineResult
from newsletter_digest_mcp.models.summary import (
    NO_ARTICLES_REASON,
    NO_RELEVANT_CONTENT_REASON,
    RelevanceVerdict,
    SourceArticle,
    SummaryBatch,
    SummaryResult,
)
from newsletter_digest_mcp.pipeline.ratelimit import CallSpacer
from newsletter_digest_mcp.utils.logging import BASE_LOGGER
from newsletter_digest_mcp.utils.models import BaseDigestArbitraryModel
from newsletter_digest_mcp.utils.timer import Timer

logger = BASE_LOGGER.getChild(__name__)

NOT_RELEVANT = "NOT_RELEVANT"


def relevance_prompt(headline: str, content: str, title: str | None = None) -> str:
    prompt = f"""
        You are a news content analyzer. Your task is to:
        1. Decide whether the article content is about the topic of the given headline
        2. If it is, write a summary of about 100 words
        3. If it is not, respond with "{NOT_RELEVANT}"

        Headline: "{headline}"
        Article Title: "{title or ""}"

        Article Content:
        {{content}}

        Instructions:
        - Respond with "{NOT_RELEVANT}" when the article covers a different topic than the headline
        - When it is relevant, write a summary of about 100 words that captures the key points
        - Focus on facts and the main information
        - Do not use phrases like "This article discusses" or "The content talks about"
        - Start directly with the information

        Response format:
        If relevant: [100-word summary]
        If not relevant: {NOT_RELEVANT}
    """

    return dedent(prompt).strip().replace("{content}", content)


def count_words(text: str) -> int:
    return len(text.split())


def is_eligible(article: ArticleScrape, min_content_length: int) -> bool:
    return isinstance(article, ScrapedArticle) and bool(article.content) and len(article.content) >= min_content_length


class RelevanceSummarizer(BaseDigestArbitraryModel):
    """Finds the first scraped article that matches each headline and summarizes it.

    Every model call goes through the shared `CallSpacer`, and headlines are handled one at a time."""

    completion_client: BaseCompletionClient
    call_spacer: CallSpacer = Field(default_factory=CallSpacer)

    min_content_length: int = 100
    """Articles with less content than this are skipped without a model call."""

    max_content_chars: int = 3000
    """The amount of article content sent to the model."""

    async def judge(self, headline: str, article: ScrapedArticle) -> RelevanceVerdict:
        """Ask the model whether the article matches the headline and, if it does, for a summary."""

        _ = await self.call_spacer.wait()

        prompt = relevance_prompt(headline=headline, content=article.content[: self.max_content_chars], title=article.title)

        try:
            response = await self.completion_client.complete(prompt)
        except Exception as e:
            logger.exception(f"Error checking relevance of {article.url} for {headline!r}")
            return RelevanceVerdict(relevant=False, error=str(e) or type(e).__name__)

        text = response.strip()

        if not text or NOT_RELEVANT in text:
            return RelevanceVerdict(relevant=False)

        return RelevanceVerdict(relevant=True, summary=text, word_count=count_words(text))

    async def summarize_headline(self, scraped: ScrapedHeadlineResult) -> SummaryResult:
        articles = scraped.scraped_articles

        if not any(is_eligible(article, self.min_content_length) for article in articles):
            return SummaryResult(headline=scraped.headline, success=False, reason=NO_ARTICLES_REASON)

        logger.info(f"Checking {len(articles)} articles for {scraped.headline!r}")

        for position, article in enumerate(articles, start=1):
            if not isinstance(article, ScrapedArticle) or not is_eligible(article, self.min_content_length):
                logger.info(f"Article {position}: skipped (no content)")
                continue

            verdict = await self.judge(scraped.headline, article)

            if verdict.relevant and verdict.summary:
                logger.info(f"Article {position}: relevant, summary has {verdict.word_count} words")

                return SummaryResult(
                    headline=scraped.headline,
                    success=True,
                    summary=verdict.summary,
                    word_count=verdict.word_count,
                    source_article=SourceArticle(
                        url=article.url,
                        title=article.title,
                        article_index=position,
                        total_articles_checked=position,
                    ),
                    total_articles_checked=position,
                )

            logger.info(f"Article {position}: not relevant")

        return SummaryResult(
            headline=scraped.headline,
            success=False,
            reason=NO_RELEVANT_CONTENT_REASON,
            total_articles_checked=len(articles),
        )

    async def summarize_all(self, scraped_results: list[ScrapedHeadlineResult]) -> SummaryBatch:
        timer = Timer(name="summarize")

        summaries: list[SummaryResult] = []
        success_count = 0

        for number, scraped in enumerate(scraped_results, start=1):
            try:
                summary = await self.summarize_headline(scraped)
            except Exception as e:
                logger.exception(f"Unexpected error summarizing {scraped.headline!r}")
                summary = SummaryResult(headline=scraped.headline, success=False, reason=str(e) or type(e).__name__)

            if summary.success:
                success_count += 1

            summaries.append(summary)

            logger.info(f"Summarized {number}/{len(scraped_results)} headlines")

        finished = timer.stop()

        logger.info(f"Summaries generated for {success_count}/{len(scraped_results)} headlines in {finished.duration:.1f}s")

        return SummaryBatch(
            summaries=summaries,
            success_count=success_count,
            failure_count=len(summaries) - success_count,
            processing_time_ms=finished.duration_ms,
        )
