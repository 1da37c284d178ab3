from abc import ABC, abstractmethod

from newsletter_digest_mcp.models.pipeline import Newsletter


class BaseMailClient(ABC):
    @abstractmethod
    async def fetch_newsletters(self) -> list[Newsletter]:
        """Return the forwarded newsletters that have not been processed yet."""

    @abstractmethod
    async def send_notification(self, recipient: str, link: str) -> None:
        """Tell the recipient where the results for their newsletter can be found."""
