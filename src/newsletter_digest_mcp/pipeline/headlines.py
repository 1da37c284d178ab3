import re
from textwrap import dedent

from pydantic import Field

from newsletter_digest_mcp.clients.completion.base import BaseCompletionClient
from newsletter_digest_mcp.models.pipeline import HeadlineExtraction
from newsletter_digest_mcp.utils.logging import BASE_LOGGER
from newsletter_digest_mcp.utils.models import BaseDigestArbitraryModel

logger = BASE_LOGGER.getChild(__name__)

NO_HEADLINES = "no news headlines found"

DEFAULT_INSTRUCTIONS = dedent("""
    You are a news headline extraction expert. Your task is to analyze newsletter content and extract only legitimate news headlines.

    INSTRUCTIONS:
    1. Extract ONLY actual news headlines or content that could be legitimate news headlines
    2. IGNORE and DO NOT include:
       - Advertisements or promotional content
       - Product announcements from companies (unless major tech/business news)
       - Marketing messages
       - Subscription offers
       - Social media posts
       - Event promotions
       - Job postings
       - Personal opinions or blog posts
       - Newsletter introductions or conclusions
       - Unsubscribe links or footer content

    3. Format your response as a numbered list with one headline per line
    4. If no legitimate news headlines are found, respond with: "No news headlines found"
""").strip()

META_WORDS = ("extract", "headline", "newsletter")

LIST_MARKER = re.compile(r"^[-•*]\s*")
NUMBERING = re.compile(r"^\d+\.\s*")
PAREN_NUMBERING = re.compile(r"^\w+\)\s*")
LEADING_ASTERISKS = re.compile(r"^\*+")
TRAILING_ASTERISKS = re.compile(r"\*+$")
LEADING_QUOTE = re.compile(r"^[\"']")
TRAILING_QUOTE = re.compile(r"[\"']$")

LINK_PATTERNS = [
    re.compile(r"https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)", re.IGNORECASE),
    re.compile(r"mailto:[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)", re.IGNORECASE),
    re.compile(r"www\.[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)", re.IGNORECASE),
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
]
BLANK_LINE_RUNS = re.compile(r"\n\s*\n\s*\n")
WHITESPACE_RUNS = re.compile(r"\s{3,}")

MIN_LINE_LENGTH = 10
MIN_HEADLINE_LENGTH = 5


def remove_links(body: str) -> str:
    """Remove URLs and email addresses from a newsletter body and tidy the whitespace they leave behind."""

    for pattern in LINK_PATTERNS:
        body = pattern.sub("", body)

    body = BLANK_LINE_RUNS.sub("\n\n", body)

    return WHITESPACE_RUNS.sub(" ", body).strip()


def _clean_line(line: str) -> str:
    for pattern in (LIST_MARKER, NUMBERING, PAREN_NUMBERING, LEADING_ASTERISKS, TRAILING_ASTERISKS, LEADING_QUOTE, TRAILING_QUOTE):
        line = pattern.sub("", line)

    return line.strip()


def _is_candidate(line: str) -> bool:
    lowercase_line = line.lower()

    if any(word in lowercase_line for word in META_WORDS):
        return False

    return not line.startswith(("---", "===")) and len(line) > MIN_LINE_LENGTH


def parse_headlines(response_text: str | None) -> list[str]:
    """Turn the model's numbered list into unique headlines, keeping their order."""

    if not response_text or NO_HEADLINES in response_text.strip().lower():
        return []

    lines = [stripped for line in response_text.splitlines() if (stripped := line.strip())]

    headlines: list[str] = []

    for line in lines:
        if not _is_candidate(line):
            continue

        headline = _clean_line(line)

        if len(headline) > MIN_HEADLINE_LENGTH and headline not in headlines:
            headlines.append(headline)

    return headlines


class HeadlineExtractor(BaseDigestArbitraryModel):
    """Asks the model for the news headlines in a newsletter."""

    completion_client: BaseCompletionClient
    instructions: str = Field(default=DEFAULT_INSTRUCTIONS)

    def build_prompt(self, body: str, subject: str = "", sender: str = "") -> str:
        return "\n\n".join(
            [
                self.instructions,
                f"Email Subject: {subject}\nEmail From: {sender}",
                f"Content:\n{body}",
                '---\nExtract news headlines from the above content (respond with numbered list or "No news headlines found"):',
            ]
        )

    async def extract(self, body: str, subject: str = "", sender: str = "") -> HeadlineExtraction:
        body = remove_links(body or "")

        if not body:
            return HeadlineExtraction(success=False, error="No content provided for analysis")

        logger.info(f"Extracting headlines from {subject!r} ({len(body)} characters)")

        try:
            response = await self.completion_client.complete(self.build_prompt(body=body, subject=subject, sender=sender))
        except Exception as e:
            logger.exception(f"Error extracting headlines from {subject!r}")
            return HeadlineExtraction(success=False, error=str(e) or type(e).__name__)

        headlines = parse_headlines(response)

        logger.info(f"Extracted {len(headlines)} headlines from {subject!r}")

        return HeadlineExtraction(success=True, headlines=headlines, raw_response=response)
