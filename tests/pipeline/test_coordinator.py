from typing import override

import pytest

from newsletter_digest_mcp.clients.mail.base import BaseMailClient
from newsletter_digest_mcp.clients.store.memory import MemoryResultStore
from newsletter_digest_mcp.errors import StoreError
from newsletter_digest_mcp.models.pipeline import Newsletter
from newsletter_digest_mcp.models.search import SearchResult
from newsletter_digest_mcp.pipeline.coordinator import PipelineCoordinator
from newsletter_digest_mcp.pipeline.summarize import NOT_RELEVANT
from newsletter_digest_mcp.settings import PipelineSettings

HEADLINES_RESPONSE = """
1. Company X raises $50M in Series B funding
2. Central bank holds interest rates steady
"""

SUMMARY = "Company X raised fifty million dollars in a Series B round to expand its engineering team."

ARTICLE_BODY = (
    "Company X said on Monday that it closed a fifty million dollar Series B round led by growth investors. "
    "The company plans to double its engineering team over the next year."
)


def respond(prompt: str) -> str:
    if prompt.startswith("You are a news headline extraction expert"):
        return HEADLINES_RESPONSE

    if 'Headline: "Company X raises $50M in Series B funding"' in prompt:
        return SUMMARY

    return NOT_RELEVANT


class RecordingMailClient(BaseMailClient):
    def __init__(self, newsletters: list[Newsletter] | None = None):
        self.newsletters = newsletters or []
        self.notifications: list[tuple[str, str]] = []

    @override
    async def fetch_newsletters(self) -> list[Newsletter]:
        return self.newsletters

    @override
    async def send_notification(self, recipient: str, link: str) -> None:
        self.notifications.append((recipient, link))


class BrokenSearchStore(MemoryResultStore):
    """Fails to save search results for one message id."""

    def __init__(self, broken_message_id: str):
        super().__init__()
        self.broken_message_id = broken_message_id

    @override
    async def save_search_results(self, results: list[SearchResult], message_id: str, user_id: str):
        if message_id == self.broken_message_id:
            msg = "disk full"
            raise StoreError(msg)

        return await super().save_search_results(results, message_id=message_id, user_id=user_id)


def newsletter(message_id: str, sender_email: str | None = "reader@example.com") -> Newsletter:
    return Newsletter(
        message_id=message_id,
        user_id=sender_email or "anonymous",
        subject=f"Newsletter {message_id}",
        sender="Morning Brew",
        sender_email=sender_email,
        body="Company X raises $50M. The central bank held rates.",
    )


@pytest.fixture
def settings() -> PipelineSettings:
    return PipelineSettings(
        search_stagger_delay_ms=0,
        fetch_delay_range_ms=(0, 0),
        summarizer_min_interval_ms=0,
        email_batch_size=2,
        results_url_template="https://digest.test/results/{message_id}",
    )


@pytest.fixture
def build_coordinator(settings, make_search_client, make_fetch_client, make_completion_client, article_html):
    def _build(store=None, mail_client=None, search_client=None) -> PipelineCoordinator:
        return PipelineCoordinator.build(
            settings=settings,
            search_client=search_client or make_search_client(),
            fetch_client=make_fetch_client(default_page=article_html("Company X raises $50M", ARTICLE_BODY)),
            completion_client=make_completion_client(respond=respond),
            store=store,
            mail_client=mail_client,
        )

    return _build


async def test_process_newsletter(build_coordinator):
    store = MemoryResultStore()
    mail_client = RecordingMailClient()
    coordinator = build_coordinator(store=store, mail_client=mail_client)

    result = await coordinator.process_newsletter(newsletter("msg-1"))

    assert result.processing_error is None
    assert result.headlines == ["Company X raises $50M in Series B funding", "Central bank holds interest rates steady"]

    assert [search.success for search in result.search_results] == [True, True]
    assert result.search_statistics.total_articles == 8

    assert [scraped.scraped_count for scraped in result.scraped_results] == [2, 2]
    assert result.scrape_statistics.successful_scrapes == 4

    funding, rates = result.summaries
    assert funding.success
    assert funding.summary == SUMMARY
    assert funding.source_article is not None
    assert funding.source_article.article_index == 1
    assert not rates.success
    assert rates.total_articles_checked == 2
    assert result.summary_statistics.successful_summaries == 1

    assert result.notified
    assert mail_client.notifications == [("reader@example.com", "https://digest.test/results/msg-1")]

    record = await store.get_processing_data("msg-1")
    assert record is not None
    assert record.headlines is not None
    assert record.summaries is not None
    assert record.summaries.successful == 1


async def test_process_newsletter_without_headlines(build_coordinator, make_search_client):
    search_client = make_search_client()
    coordinator = build_coordinator(search_client=search_client)

    result = await coordinator.process_newsletter(newsletter("msg-2").model_copy(update={"body": ""}))

    assert result.headlines == []
    assert result.headline_extraction_error == "No content provided for analysis"
    assert result.processing_error is None
    assert search_client.calls == []
    assert not result.notified


async def test_no_notification_without_sender_email(build_coordinator):
    mail_client = RecordingMailClient()
    coordinator = build_coordinator(mail_client=mail_client)

    result = await coordinator.process_newsletter(newsletter("msg-3", sender_email=None))

    assert result.processing_error is None
    assert not result.notified
    assert mail_client.notifications == []


async def test_stage_failure_keeps_partial_results(build_coordinator):
    store = BrokenSearchStore(broken_message_id="broken")
    coordinator = build_coordinator(store=store)

    report = await coordinator.process_newsletters([newsletter("ok-1"), newsletter("broken"), newsletter("ok-2")])

    assert [result.message_id for result in report.results] == ["ok-1", "broken", "ok-2"]
    assert report.processed == 3
    assert report.failed_emails == 1

    broken = report.results[1]
    assert broken.processing_error == "disk full"
    assert len(broken.headlines) == 2
    assert broken.summaries == []

    assert all(result.processing_error is None for result in (report.results[0], report.results[2]))
    assert report.successful_summaries == 2

    record = await store.get_processing_data("broken")
    assert record is not None
    assert record.headlines is not None
    assert record.search_results is None


async def test_run(build_coordinator):
    mail_client = RecordingMailClient(newsletters=[newsletter("msg-4"), newsletter("msg-5", sender_email="other@example.com")])
    coordinator = build_coordinator(mail_client=mail_client)

    report = await coordinator.run()

    assert report.processed == 2
    assert report.total_headlines == 4
    assert report.total_searches == 4
    assert report.successful_searches == 4
    assert report.successful_scrapes == 8
    assert report.successful_summaries == 2
    assert sorted(recipient for recipient, _ in mail_client.notifications) == ["other@example.com", "reader@example.com"]


async def test_run_without_newsletters(build_coordinator):
    report = await build_coordinator(mail_client=RecordingMailClient()).run()

    assert report.processed == 0
    assert report.results == []


async def test_run_needs_mail_client(build_coordinator):
    with pytest.raises(ValueError, match="mail client"):
        _ = await build_coordinator().run()


async def test_headline_extraction_uses_instructions_and_clean_body(settings, make_search_client, make_fetch_client, make_completion_client):
    instructions = "You are a news headline extraction expert. Only list funding news."
    completion_client = make_completion_client(respond=respond)
    coordinator = PipelineCoordinator.build(
        settings=settings,
        search_client=make_search_client(),
        fetch_client=make_fetch_client(),
        completion_client=completion_client,
        headline_instructions=instructions,
    )

    linked = newsletter("msg-6").model_copy(update={"body": "Company X raises $50M https://news.test/company-x. Details at www.brew.test"})

    result = await coordinator.process_newsletter(linked)

    assert result.processing_error is None
    assert completion_client.prompts[0].startswith(instructions)
    assert "news.test" not in completion_client.prompts[0]
    assert "brew.test" not in completion_client.prompts[0]
