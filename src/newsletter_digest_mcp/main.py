import asyncio
import functools
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Literal

import asyncclick as click
import yaml

from newsletter_digest_mcp.clients.completion.base import BaseCompletionClient
from newsletter_digest_mcp.clients.completion.openai_chat import OpenAICompletionClient
from newsletter_digest_mcp.clients.fetch.browser import BrowserFetchClient
from newsletter_digest_mcp.clients.mail.directory import DirectoryMailClient
from newsletter_digest_mcp.clients.search.searxng import SearxngClient
from newsletter_digest_mcp.clients.store.directory import DirectoryResultStore
from newsletter_digest_mcp.pipeline.coordinator import PipelineCoordinator
from newsletter_digest_mcp.servers.digest import DigestServer, build_mcp
from newsletter_digest_mcp.settings import PipelineSettings
from newsletter_digest_mcp.utils.logging import BASE_LOGGER

logger = BASE_LOGGER.getChild(__name__)

PIPELINE_OPTIONS = [
    click.option("--searxng-url", type=str, envvar="SEARXNG_URL", default="http://localhost:8888", help="The SearXNG instance to search"),
    click.option("--results-per-headline", type=int, envvar="RESULTS_PER_HEADLINE", default=4, help="Search results kept per headline"),
    click.option("--max-parallel-searches", type=int, envvar="MAX_PARALLEL_SEARCHES", default=5, help="Headlines searched at once"),
    click.option("--search-stagger-delay-ms", type=int, envvar="SEARCH_STAGGER_DELAY", default=200, help="Offset between search starts"),
    click.option("--urls-per-headline", type=int, envvar="SCRAPE_URLS_PER_HEADLINE", default=2, help="Search results scraped per headline"),
    click.option("--max-parallel-scrapes", type=int, envvar="MAX_PARALLEL_SCRAPES", default=5, help="Page fetches in flight at once"),
    click.option(
        "--summarizer-min-interval-ms", type=int, envvar="SUMMARIZER_MIN_INTERVAL", default=10000, help="Minimum gap between model calls"
    ),
    click.option("--email-batch-size", type=int, envvar="EMAIL_BATCH_SIZE", default=3, help="Emails processed at once"),
    click.option(
        "--results-url-template",
        type=str,
        envvar="RESULTS_URL_TEMPLATE",
        default="http://localhost:3000/results/{message_id}",
        help="The link sent once an email is processed",
    ),
]


def pipeline_options[**P, R](func: Callable[P, Awaitable[R]]) -> Callable[..., Awaitable[R]]:
    """Add the pipeline options to a command and hand them to it as a single `settings` argument."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> R:  # pyright: ignore[reportAny]
        settings_fields = set(PipelineSettings.model_fields)
        settings = PipelineSettings(**{name: kwargs.pop(name) for name in list(kwargs) if name in settings_fields})
        return await func(*args, settings=settings, **kwargs)  # pyright: ignore[reportCallIssue]

    for option in reversed(PIPELINE_OPTIONS):
        wrapper = option(wrapper)

    return wrapper


def get_completion_client() -> BaseCompletionClient | None:
    if not OpenAICompletionClient.is_configured():
        return None

    return OpenAICompletionClient.from_env()


@click.group()
async def cli():
    pass


@cli.command()
@click.option(
    "--mcp-transport", type=click.Choice(["stdio", "streamable-http"]), default="stdio", help="The transport to run the MCP server on"
)
@pipeline_options
async def serve(settings: PipelineSettings, mcp_transport: Literal["stdio", "streamable-http"]):
    digest_server = DigestServer.from_settings(settings=settings, completion_client=get_completion_client())

    mcp = build_mcp(digest_server)

    await mcp.run_async(transport=mcp_transport)


@cli.command()
@click.option("--inbox", type=click.Path(file_okay=False, path_type=Path), envvar="DIGEST_INBOX", required=True, help="Newsletters to process")
@click.option(
    "--results-dir", type=click.Path(file_okay=False, path_type=Path), envvar="DIGEST_RESULTS_DIR", required=True, help="Where to save results"
)
@pipeline_options
async def process(settings: PipelineSettings, inbox: Path, results_dir: Path):
    if (completion_client := get_completion_client()) is None:
        msg = "Processing newsletters needs a model: set OPENAI_MODEL, OPENAI_API_KEY and OPENAI_BASE_URL"
        raise click.UsageError(msg)

    search_client = SearxngClient(
        base_url=settings.searxng_url,
        max_attempts=settings.search_max_attempts,
        retry_delay=settings.search_retry_delay_ms / 1000,
        timeout=settings.search_timeout_ms / 1000,
    )
    fetch_client = BrowserFetchClient(timeout=settings.fetch_timeout_ms / 1000)

    coordinator = PipelineCoordinator.build(
        settings=settings,
        search_client=search_client,
        fetch_client=fetch_client,
        completion_client=completion_client,
        store=DirectoryResultStore(root=results_dir),
        mail_client=DirectoryMailClient(inbox=inbox),
    )

    try:
        report = await coordinator.run()
    finally:
        await search_client.close()
        await fetch_client.close()

    click.echo(yaml.safe_dump(report.model_dump(mode="json", exclude={"results"}), sort_keys=False))


def run_mcp():
    asyncio.run(cli())


if __name__ == "__main__":
    run_mcp()
