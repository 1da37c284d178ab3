from abc import ABC, abstractmethod

from newsletter_digest_mcp.models.search import SearchResult


class BaseSearchClient(ABC):
    @abstractmethod
    async def search(self, headline: str, result_count: int = 4, category: str = "general") -> SearchResult: ...
