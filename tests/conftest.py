import asyncio
import time
from collections.abc import Callable
from textwrap import dedent
from typing import override

import pytest

from newsletter_digest_mcp.clients.completion.base import BaseCompletionClient
from newsletter_digest_mcp.clients.fetch.base import BaseFetchClient
from newsletter_digest_mcp.clients.search.base import BaseSearchClient
from newsletter_digest_mcp.errors import FetchStatusError
from newsletter_digest_mcp.models.scrape import FailedArticle, ScrapedArticle, ScrapedHeadlineResult
from newsletter_digest_mcp.models.search import ArticleRef, SearchResult


class FakeSearchClient(BaseSearchClient):
    """Returns `results_per_headline` hits for every headline, after an optional per-headline latency."""

    def __init__(
        self,
        results_per_headline: int = 4,
        latency: dict[str, float] | None = None,
        failures: set[str] | None = None,
        errors: set[str] | None = None,
    ):
        self.results_per_headline = results_per_headline
        self.latency = latency or {}
        self.failures = failures or set()
        self.errors = errors or set()
        self.calls: list[tuple[str, float]] = []
        self.finished: list[tuple[str, float]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @override
    async def search(self, headline: str, result_count: int = 4, category: str = "general") -> SearchResult:
        self.calls.append((headline, time.monotonic()))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)

        try:
            await asyncio.sleep(self.latency.get(headline, 0))

            if headline in self.errors:
                msg = f"search exploded for {headline}"
                raise RuntimeError(msg)

            if headline in self.failures:
                return SearchResult.failed(headline=headline, error="Failed after 3 attempts: boom")

            slug = headline.lower().replace(" ", "-")
            results = [
                ArticleRef(rank=rank, title=f"{headline} ({rank})", url=f"https://news.test/{slug}/{rank}")
                for rank in range(1, min(result_count, self.results_per_headline) + 1)
            ]

            return SearchResult(headline=headline, query=headline, success=True, results=results, total_found=len(results))
        finally:
            self.in_flight -= 1
            self.finished.append((headline, time.monotonic()))


class FakeFetchClient(BaseFetchClient):
    """Serves HTML from a dict of pages. Unknown URLs get a 404."""

    def __init__(self, pages: dict[str, str] | None = None, latency: float = 0.0, default_page: str | None = None):
        self.pages = pages or {}
        self.latency = latency
        self.default_page = default_page
        self.calls: list[str] = []
        self.started: dict[str, float] = {}
        self.finished: dict[str, float] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    @override
    async def fetch(self, url: str) -> str:
        self.calls.append(url)
        self.started[url] = time.monotonic()
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)

        try:
            await asyncio.sleep(self.latency)

            if url in self.pages:
                return self.pages[url]

            if self.default_page is not None:
                return self.default_page

            raise FetchStatusError(url=url, status=404)
        finally:
            self.in_flight -= 1
            self.finished[url] = time.monotonic()


class FakeCompletionClient(BaseCompletionClient):
    """Answers prompts with `respond(prompt)` and records when each call arrived."""

    def __init__(self, respond: Callable[[str], str] | None = None):
        self.respond = respond or (lambda _prompt: "NOT_RELEVANT")
        self.prompts: list[str] = []
        self.call_times: list[float] = []

    @override
    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        self.call_times.append(time.monotonic())
        return self.respond(prompt)


@pytest.fixture
def make_search_client() -> type[FakeSearchClient]:
    return FakeSearchClient


@pytest.fixture
def make_fetch_client() -> type[FakeFetchClient]:
    return FakeFetchClient


@pytest.fixture
def make_completion_client() -> type[FakeCompletionClient]:
    return FakeCompletionClient


@pytest.fixture
def article_html() -> Callable[[str, str], str]:
    """Factory for an article page with a title and one paragraph of body text."""

    def _make(title: str, body: str) -> str:
        html_page = f"""
        <html>
            <head>
                <title>{title}</title>
                <meta name="author" content="Jane Reporter">
            </head>
            <body>
                <nav>Home | World | Business</nav>
                <article>
                    <h1>{title}</h1>
                    <p>{body}</p>
                </article>
                <script>track();</script>
            </body>
        </html>
        """

        return dedent(html_page).strip()

    return _make


@pytest.fixture
def scraped_article() -> Callable[..., ScrapedArticle]:
    """Factory for a successfully scraped article with the given content."""

    def _make(url: str, content: str, title: str | None = None) -> ScrapedArticle:
        return ScrapedArticle(
            url=url,
            title=title or url,
            content=content,
            content_preview=content,
            word_count=len(content.split()),
        )

    return _make


@pytest.fixture
def scraped_headline() -> Callable[..., ScrapedHeadlineResult]:
    """Factory for a headline's scrape result built from a list of articles."""

    def _make(headline: str, articles: list[ScrapedArticle | FailedArticle]) -> ScrapedHeadlineResult:
        return ScrapedHeadlineResult(
            headline=headline,
            search_success=True,
            total_search_results=len(articles),
            scraped_count=sum(1 for article in articles if article.success),
            scraped_articles=articles,
        )

    return _make
