from collections.abc import Callable
from typing import Annotated, Any, ClassVar
from uuid import uuid4

from fastmcp import Context, FastMCP
from fastmcp.tools import Tool
from pydantic import BaseModel, ConfigDict, Field

from newsletter_digest_mcp.clients.completion.base import BaseCompletionClient
from newsletter_digest_mcp.clients.completion.sampling import SamplingCompletionClient
from newsletter_digest_mcp.clients.fetch.base import BaseFetchClient
from newsletter_digest_mcp.clients.fetch.browser import BrowserFetchClient
from newsletter_digest_mcp.clients.search.base import BaseSearchClient
from newsletter_digest_mcp.clients.search.searxng import SearxngClient
from newsletter_digest_mcp.clients.store.base import BaseResultStore
from newsletter_digest_mcp.clients.store.memory import MemoryResultStore
from newsletter_digest_mcp.models.pipeline import HeadlineExtraction, Newsletter, ProcessedNewsletter, ProcessingRecord
from newsletter_digest_mcp.models.scrape import FailedArticle, ScrapedArticle
from newsletter_digest_mcp.models.search import ConnectionCheck, SearchResult
from newsletter_digest_mcp.pipeline.coordinator import PipelineCoordinator
from newsletter_digest_mcp.pipeline.fetch import ArticleFetcher
from newsletter_digest_mcp.pipeline.headlines import DEFAULT_INSTRUCTIONS, HeadlineExtractor
from newsletter_digest_mcp.pipeline.ratelimit import CallSpacer
from newsletter_digest_mcp.settings import PipelineSettings
from newsletter_digest_mcp.utils.logging import BASE_LOGGER

logger = BASE_LOGGER.getChild(__name__)


class DigestServer(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(arbitrary_types_allowed=True)

    settings: PipelineSettings = Field(default_factory=PipelineSettings)
    search_client: BaseSearchClient
    fetch_client: BaseFetchClient = Field(default_factory=BrowserFetchClient)
    store: BaseResultStore = Field(default_factory=MemoryResultStore)

    completion_client: BaseCompletionClient | None = None
    """The model used for headline extraction and summaries. Without one, the MCP client is asked to sample."""

    call_spacer: CallSpacer = Field(default_factory=CallSpacer)
    """Shared by every summarizer this server builds."""

    headline_instructions: str = DEFAULT_INSTRUCTIONS
    """The instructions sent to the model when extracting headlines. Can be replaced at runtime."""

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        completion_client: BaseCompletionClient | None = None,
        store: BaseResultStore | None = None,
    ) -> "DigestServer":
        return cls(
            settings=settings,
            search_client=SearxngClient(
                base_url=settings.searxng_url,
                max_attempts=settings.search_max_attempts,
                retry_delay=settings.search_retry_delay_ms / 1000,
                timeout=settings.search_timeout_ms / 1000,
            ),
            fetch_client=BrowserFetchClient(timeout=settings.fetch_timeout_ms / 1000),
            store=store or MemoryResultStore(),
            completion_client=completion_client,
            call_spacer=CallSpacer.from_milliseconds(settings.summarizer_min_interval_ms),
        )

    def _completion_client(self, ctx: Context) -> BaseCompletionClient:
        return self.completion_client or SamplingCompletionClient(context=ctx)

    def coordinator(self, ctx: Context) -> PipelineCoordinator:
        return PipelineCoordinator.build(
            settings=self.settings,
            search_client=self.search_client,
            fetch_client=self.fetch_client,
            completion_client=self._completion_client(ctx),
            store=self.store,
            call_spacer=self.call_spacer,
            headline_instructions=self.headline_instructions,
        )

    async def search_headline(
        self,
        headline: str,
        results: Annotated[int, "The number of search results to return"] = 4,
    ) -> SearchResult:
        """Search the web for articles about a news headline."""
        return await self.search_client.search(headline, result_count=results, category=self.settings.search_category)

    async def test_search_connection(self) -> ConnectionCheck:
        """Check that the search backend is reachable."""

        if not isinstance(self.search_client, SearxngClient):
            return ConnectionCheck(success=False, url="", error="The configured search client cannot be tested")

        return await self.search_client.test_connection()

    async def scrape_article(self, url: str) -> ScrapedArticle | FailedArticle:
        """Fetch a news article and extract its readable text."""

        fetcher = ArticleFetcher(
            fetch_client=self.fetch_client,
            max_attempts=self.settings.fetch_max_attempts,
            delay_range_ms=self.settings.fetch_delay_range_ms,
        )

        return await fetcher.fetch(url)

    async def extract_headlines(self, ctx: Context, content: str, subject: str = "", sender: str = "") -> HeadlineExtraction:
        """Extract the news headlines from the text of a newsletter."""

        extractor = HeadlineExtractor(completion_client=self._completion_client(ctx), instructions=self.headline_instructions)

        return await extractor.extract(body=content, subject=subject, sender=sender)

    async def process_newsletter(
        self,
        ctx: Context,
        content: Annotated[str, "The text of the newsletter"],
        subject: str = "",
        sender: str = "",
        message_id: Annotated[str | None, "An id to store the results under. A new one is generated when omitted."] = None,
        user_id: str = "anonymous",
    ) -> ProcessedNewsletter:
        """Extract the headlines of a newsletter, find and scrape articles for each, and summarize the relevant ones."""

        newsletter = Newsletter(
            message_id=message_id or uuid4().hex,
            user_id=user_id,
            subject=subject,
            sender=sender,
            body=content,
        )

        return await self.coordinator(ctx).process_newsletter(newsletter)

    async def get_headline_prompt(self) -> str:
        """Return the instructions used to extract headlines from newsletters."""
        return self.headline_instructions

    async def update_headline_prompt(self, prompt: Annotated[str, "The new headline extraction instructions"]) -> str:
        """Replace the instructions used to extract headlines from newsletters."""

        if not prompt.strip():
            msg = "A headline prompt is required"
            raise ValueError(msg)

        self.headline_instructions = prompt.strip()

        logger.info(f"Headline prompt updated ({len(self.headline_instructions)} characters)")

        return self.headline_instructions

    async def get_processing_data(self, message_id: str) -> ProcessingRecord | None:
        """Return everything stored for a processed newsletter."""
        return await self.store.get_processing_data(message_id)


def build_mcp(digest_server: DigestServer, sampling_handler: Callable[..., Any] | None = None) -> FastMCP[None]:
    mcp = FastMCP[None](name="Newsletter Digest MCP", sampling_handler=sampling_handler)

    mcp.add_tool(Tool.from_function(digest_server.search_headline, name="search_headline"))
    mcp.add_tool(Tool.from_function(digest_server.test_search_connection, name="test_search_connection"))
    mcp.add_tool(Tool.from_function(digest_server.scrape_article, name="scrape_article"))
    mcp.add_tool(Tool.from_function(digest_server.extract_headlines, name="extract_headlines"))
    mcp.add_tool(Tool.from_function(digest_server.process_newsletter, name="process_newsletter"))
    mcp.add_tool(Tool.from_function(digest_server.get_processing_data, name="get_processing_data"))
    mcp.add_tool(Tool.from_function(digest_server.get_headline_prompt, name="get_headline_prompt"))
    mcp.add_tool(Tool.from_function(digest_server.update_headline_prompt, name="update_headline_prompt"))

    return mcp
