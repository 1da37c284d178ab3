import random
from typing import override

from aiohttp import ClientSession, ClientTimeout

from newsletter_digest_mcp.clients.fetch.base import BaseFetchClient
from newsletter_digest_mcp.errors import FetchStatusError

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36",
]

MAX_REDIRECTS = 5


def browser_headers(user_agent: str) -> dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
    }


class BrowserFetchClient(BaseFetchClient):
    """Fetches pages the way a desktop browser would ask for them, without verifying TLS certificates."""

    session: ClientSession | None

    def __init__(self, timeout: float = 10.0, user_agents: list[str] | None = None, session: ClientSession | None = None):
        self.timeout = timeout
        self.user_agents = user_agents or USER_AGENTS
        self.session = session

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None

    @override
    async def fetch(self, url: str) -> str:
        if self.session is None:
            self.session = ClientSession()

        async with self.session.get(
            url,
            headers=browser_headers(random.choice(self.user_agents)),  # noqa: S311
            ssl=False,
            allow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            timeout=ClientTimeout(total=self.timeout),
        ) as response:
            if response.status >= 400:  # noqa: PLR2004
                raise FetchStatusError(url=url, status=response.status)

            return await response.text()
