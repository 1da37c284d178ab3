from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PipelineSettings(BaseModel):
    """Tunable values for every stage of the digest pipeline."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, use_attribute_docstrings=True)

    searxng_url: str = "http://localhost:8888"
    """The base URL of the SearXNG instance."""

    results_per_headline: int = Field(default=4, ge=1)
    """The number of search results to keep per headline."""

    search_category: str = "general"
    """The SearXNG category to search."""

    max_parallel_searches: int = Field(default=5, ge=1)
    """The number of headlines searched concurrently in one chunk."""

    search_stagger_delay_ms: int = Field(default=200, ge=0)
    """The offset between search starts inside a chunk."""

    search_max_attempts: int = Field(default=3, ge=1)
    """The number of attempts for one search request."""

    search_retry_delay_ms: int = Field(default=1000, ge=0)
    """The fixed delay between search attempts."""

    search_timeout_ms: int = Field(default=10000, ge=1)
    """The timeout for one search request."""

    urls_per_headline: int = Field(default=2, ge=0)
    """The number of search result URLs scraped per headline."""

    max_parallel_scrapes: int = Field(default=5, ge=1)
    """The number of page fetches allowed in flight across a scrape batch."""

    scrape_batch_size: int = Field(default=5, ge=1)
    """The number of headlines scraped per batch."""

    fetch_max_attempts: int = Field(default=2, ge=1)
    """The number of attempts for one page fetch."""

    fetch_timeout_ms: int = Field(default=10000, ge=1)
    """The timeout for one page fetch."""

    fetch_delay_range_ms: tuple[int, int] = (500, 1500)
    """The range of the random delay applied before each page fetch."""

    summarizer_min_interval_ms: int = Field(default=10000, ge=0)
    """The minimum spacing between two completion calls made by the summarizer."""

    email_batch_size: int = Field(default=3, ge=1)
    """The number of emails processed concurrently."""

    results_url_template: str = "http://localhost:3000/results/{message_id}"
    """The link sent to the user once an email has been processed."""

    @model_validator(mode="after")
    def _check_delay_range(self) -> "PipelineSettings":
        low, high = self.fetch_delay_range_ms
        if low < 0 or high < low:
            msg = f"Invalid fetch delay range: {self.fetch_delay_range_ms}"
            raise ValueError(msg)
        return self

    def results_link(self, message_id: str) -> str:
        return self.results_url_template.format(message_id=message_id)
