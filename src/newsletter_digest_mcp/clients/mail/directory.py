import asyncio
from datetime import UTC, datetime
from email.utils import parseaddr
from pathlib import Path
from typing import override

import yaml

from newsletter_digest_mcp.clients.mail.base import BaseMailClient
from newsletter_digest_mcp.errors import MailError
from newsletter_digest_mcp.models.pipeline import Newsletter
from newsletter_digest_mcp.utils.logging import BASE_LOGGER

logger = BASE_LOGGER.getChild(__name__)

HEADER_NAMES = {"subject", "from", "to", "user"}


def parse_newsletter(text: str, message_id: str, received_at: datetime | None = None) -> Newsletter:
    """Parse a plain text newsletter with optional `Subject:`, `From:`, `To:` and `User:` header lines.

    Headers end at the first blank line. A file that does not start with a known header is all body."""

    headers: dict[str, str] = {}
    lines = text.splitlines()
    body_start = 0

    for index, line in enumerate(lines):
        if not line.strip():
            body_start = index + 1 if headers else 0
            break

        name, separator, value = line.partition(":")

        if not separator or name.strip().lower() not in HEADER_NAMES:
            body_start = 0 if not headers else index
            break

        headers[name.strip().lower()] = value.strip()
    else:
        body_start = len(lines) if headers else 0

    sender_name, sender_email = parseaddr(headers.get("from", ""))

    return Newsletter(
        message_id=message_id,
        user_id=headers.get("user") or sender_email or "anonymous",
        subject=headers.get("subject", ""),
        sender=headers.get("from", sender_name),
        sender_email=sender_email or None,
        body="\n".join(lines[body_start:]).strip(),
        received_at=received_at,
    )


class DirectoryMailClient(BaseMailClient):
    """Reads newsletters from `*.txt` files in an inbox directory and records notifications in `outbox.yaml`.

    Fetched files are moved to the `processed` directory so that the next fetch only sees new mail."""

    def __init__(self, inbox: Path, outbox: Path | None = None, processed: Path | None = None):
        self.inbox = inbox
        self.outbox = outbox or inbox / "outbox.yaml"
        self.processed = processed or inbox / "processed"

    def _read_inbox(self) -> list[Newsletter]:
        if not self.inbox.is_dir():
            msg = f"Inbox {self.inbox} is not a directory"
            raise MailError(msg)

        newsletters: list[Newsletter] = []

        for path in sorted(self.inbox.glob("*.txt")):
            received_at = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
            newsletters.append(parse_newsletter(path.read_text(encoding="utf-8"), message_id=path.stem, received_at=received_at))

            self.processed.mkdir(parents=True, exist_ok=True)
            _ = path.rename(self.processed / path.name)

        return newsletters

    @override
    async def fetch_newsletters(self) -> list[Newsletter]:
        try:
            newsletters = await asyncio.to_thread(self._read_inbox)
        except OSError as e:
            msg = f"Error reading inbox {self.inbox}: {e}"
            raise MailError(msg) from e

        logger.info(f"Found {len(newsletters)} newsletters in {self.inbox}")

        return newsletters

    def _append_notification(self, recipient: str, link: str) -> None:
        entry = {"to": recipient, "link": link, "sent_at": datetime.now(tz=UTC).isoformat()}

        with self.outbox.open("a", encoding="utf-8") as outbox:
            outbox.write(yaml.safe_dump([entry], sort_keys=False))

    @override
    async def send_notification(self, recipient: str, link: str) -> None:
        if not recipient:
            msg = "A notification needs a recipient"
            raise MailError(msg)

        try:
            await asyncio.to_thread(self._append_notification, recipient, link)
        except OSError as e:
            msg = f"Error recording notification for {recipient}: {e}"
            raise MailError(msg) from e

        logger.info(f"Notified {recipient} with {link}")
