import asyncio
import re
from typing import Any, override

from aiohttp import ClientError, ClientSession, ClientTimeout, ContentTypeError
from pydantic import BaseModel, ConfigDict, ValidationError

from newsletter_digest_mcp.clients.search.base import BaseSearchClient
from newsletter_digest_mcp.errors import SearchBackendError
from newsletter_digest_mcp.models.search import ArticleRef, ConnectionCheck, SearchResult
from newsletter_digest_mcp.utils.logging import BASE_LOGGER

logger = BASE_LOGGER.getChild(__name__)

NON_QUERY_CHARACTERS = re.compile(r"[^\w\s-]")
WHITESPACE = re.compile(r"\s+")


def prepare_search_query(headline: str) -> str:
    """Strip punctuation other than hyphens from a headline and collapse its whitespace."""

    return WHITESPACE.sub(" ", NON_QUERY_CHARACTERS.sub(" ", headline)).strip()


class SearxngHit(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    url: str | None = None
    content: str | None = None
    publishedDate: str | None = None  # noqa: N815
    engine: str | None = None
    score: float | None = None

    def to_article_ref(self, rank: int) -> ArticleRef | None:
        if not self.url or not self.title:
            return None

        return ArticleRef(
            rank=rank,
            title=self.title,
            url=self.url,
            content=self.content or "",
            published_date=self.publishedDate,
            engine=self.engine or "unknown",
            score=self.score or 0,
        )


def parse_search_results(payload: Any, max_results: int) -> list[ArticleRef]:  # pyright: ignore[reportAny]
    """Truncate the backend's hits to `max_results`, rank them in source order, and drop hits without a url or title."""

    if not isinstance(payload, dict):
        return []

    raw_hits = payload.get("results")  # pyright: ignore[reportUnknownMemberType]

    if not isinstance(raw_hits, list):
        return []

    article_refs: list[ArticleRef] = []

    for rank, raw_hit in enumerate(raw_hits[:max_results], start=1):  # pyright: ignore[reportUnknownArgumentType]
        try:
            hit = SearxngHit.model_validate(raw_hit)
        except ValidationError:
            continue

        if article_ref := hit.to_article_ref(rank=rank):
            article_refs.append(article_ref)

    return article_refs


class SearxngClient(BaseSearchClient):
    session: ClientSession | None

    def __init__(
        self,
        base_url: str = "http://localhost:8888",
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 10.0,
        session: ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.session = session

    def _get_session(self) -> ClientSession:
        if self.session is None:
            self.session = ClientSession()

        return self.session

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None

    async def _request(self, query: str, category: str, timeout: float) -> Any:  # pyright: ignore[reportAny]
        async with self._get_session().get(
            url=f"{self.base_url}/search",
            params={
                "q": query,
                "format": "json",
                "categories": category,
                "language": "en",
                "time_range": "week",
                "safesearch": "0",
            },
            headers={
                "User-Agent": "NewsHeadlineBot/1.0",
                "Accept": "application/json",
            },
            timeout=ClientTimeout(total=timeout),
        ) as response:
            if response.status != 200:  # noqa: PLR2004
                raise SearchBackendError(status=response.status, reason=response.reason)

            try:
                return await response.json()
            except (ContentTypeError, ValueError) as e:
                raise SearchBackendError(status=response.status, reason=f"invalid JSON body: {e}") from e

    @override
    async def search(self, headline: str, result_count: int = 4, category: str = "general") -> SearchResult:
        if not headline or not headline.strip():
            return SearchResult.failed(headline=headline, error="No headline provided for search")

        query = prepare_search_query(headline)

        if not query:
            return SearchResult.failed(headline=headline, error="Headline has no searchable words", query=query)

        logger.info(f"Searching for {headline!r} with query {query!r}")

        last_error: str = "unknown error"

        for attempt in range(1, self.max_attempts + 1):
            try:
                payload = await self._request(query=query, category=category, timeout=self.timeout)  # pyright: ignore[reportAny]
            except Exception as e:
                last_error = str(e) or type(e).__name__
                logger.warning(f"Search attempt {attempt}/{self.max_attempts} for {query!r} failed: {last_error}")

                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay)

                continue

            results = parse_search_results(payload, max_results=result_count)

            logger.info(f"Found {len(results)} results for {headline!r}")

            return SearchResult(headline=headline, query=query, success=True, results=results, total_found=len(results))

        return SearchResult.failed(
            headline=headline,
            query=query,
            error=f"Failed after {self.max_attempts} attempts: {last_error}",
        )

    async def test_connection(self) -> ConnectionCheck:
        """Run a single throwaway search to check that the instance is reachable."""

        try:
            _ = await self._request(query="test", category="general", timeout=5.0)  # pyright: ignore[reportAny]
        except (ClientError, TimeoutError, SearchBackendError) as e:
            return ConnectionCheck(success=False, url=self.base_url, error=str(e) or type(e).__name__)

        return ConnectionCheck(success=True, url=self.base_url, message="SearXNG is reachable and responding")
