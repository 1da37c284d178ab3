import re
from typing import ClassVar

import lxml.html
from lxml.etree import ParserError
from pydantic import BaseModel, ConfigDict, Field

from newsletter_digest_mcp.errors import ExtractionError

BOILERPLATE_PHRASES = [
    "Advertisement",
    "Cookie Notice",
    "Subscribe",
    "Sign up",
    "Newsletter",
    "Share this",
]

PREVIEW_WORDS = 150

XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)


def _has_class(name: str) -> str:
    return f"//*[contains(concat(' ', normalize-space(@class), ' '), ' {name} ')]"


class ContentSelector(BaseModel):
    """A named XPath expression that may locate the main content container of a page."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    name: str
    xpath: str


DEFAULT_CONTENT_SELECTORS: list[ContentSelector] = [
    ContentSelector(name="article", xpath="//article"),
    ContentSelector(name="main", xpath="//main"),
    ContentSelector(name='[role="main"]', xpath='//*[@role="main"]'),
    ContentSelector(name=".article-content", xpath=_has_class("article-content")),
    ContentSelector(name=".article-body", xpath=_has_class("article-body")),
    ContentSelector(name=".post-content", xpath=_has_class("post-content")),
    ContentSelector(name=".entry-content", xpath=_has_class("entry-content")),
    ContentSelector(name=".content", xpath=_has_class("content")),
    ContentSelector(name="#content", xpath='//*[@id="content"]'),
    ContentSelector(name=".story-body", xpath=_has_class("story-body")),
    ContentSelector(name='[itemprop="articleBody"]', xpath='//*[@itemprop="articleBody"]'),
    ContentSelector(name=".article__body", xpath=_has_class("article__body")),
]


class PageMetadata(BaseModel):
    title: str | None = None
    description: str | None = None
    author: str | None = None


class ExtractedPage(BaseModel):
    content: str
    metadata: PageMetadata

    @property
    def words(self) -> list[str]:
        return self.content.split()

    @property
    def word_count(self) -> int:
        return len(self.words)

    @property
    def preview(self) -> str:
        words = self.words
        preview = " ".join(words[:PREVIEW_WORDS])
        return f"{preview}..." if len(words) > PREVIEW_WORDS else preview


def clean_text(text: str, boilerplate: list[str] | None = None) -> str:
    """Collapse whitespace and remove boilerplate phrases, ignoring case."""

    if not text:
        return ""

    text = " ".join(text.split())

    for phrase in BOILERPLATE_PHRASES if boilerplate is None else boilerplate:
        text = re.sub(re.escape(phrase), " ", text, flags=re.IGNORECASE)

    return " ".join(text.split())


class ArticleExtractor(BaseModel):
    """Reduces an HTML page to its readable article text and metadata."""

    selectors: list[ContentSelector] = Field(default_factory=lambda: list(DEFAULT_CONTENT_SELECTORS))
    """Selectors tried in order to find the main content container."""

    min_container_chars: int = 50
    """A container is used only when its text is longer than this."""

    min_fallback_paragraph_chars: int = 30
    """Without a container, page paragraphs are used only when longer than this."""

    boilerplate: list[str] = Field(default_factory=lambda: list(BOILERPLATE_PHRASES))

    def extract(self, html: str, url: str = "") -> ExtractedPage:
        try:
            # lxml refuses str input that still carries an encoding declaration
            document = lxml.html.fromstring(XML_DECLARATION.sub("", html, count=1))
        except (ParserError, ValueError) as e:
            raise ExtractionError(url=url, error=str(e)) from e

        for element in document.xpath("//script | //style | //noscript"):
            element.drop_tree()

        return ExtractedPage(content=self.extract_content(document), metadata=self.extract_metadata(document))

    def find_container(self, document: lxml.html.HtmlElement) -> lxml.html.HtmlElement | None:
        for selector in self.selectors:
            matches = document.xpath(selector.xpath)

            if not matches:
                continue

            if len(matches[0].text_content().strip()) > self.min_container_chars:
                return matches[0]

        return None

    def extract_content(self, document: lxml.html.HtmlElement) -> str:
        container = self.find_container(document)

        if container is not None:
            paragraphs = container.xpath(".//p")

            if paragraphs:
                text = "\n\n".join(
                    paragraph_text for paragraph in paragraphs if (paragraph_text := paragraph.text_content().strip())
                )
            else:
                text = container.text_content().strip()
        else:
            text = "\n\n".join(
                paragraph_text
                for paragraph in document.xpath("//p")
                if len(paragraph_text := paragraph.text_content().strip()) > self.min_fallback_paragraph_chars
            )

        return clean_text(text, boilerplate=self.boilerplate)

    def extract_metadata(self, document: lxml.html.HtmlElement) -> PageMetadata:
        return PageMetadata(
            title=_first_text(document, "//title")
            or _meta_content(document, property_name="og:title")
            or _first_text(document, "//h1"),
            description=_meta_content(document, name="description") or _meta_content(document, property_name="og:description"),
            author=_meta_content(document, name="author") or _meta_content(document, property_name="article:author"),
        )


def _first_text(document: lxml.html.HtmlElement, xpath: str) -> str | None:
    matches = document.xpath(xpath)

    if not matches:
        return None

    return matches[0].text_content().strip() or None


def _meta_content(document: lxml.html.HtmlElement, name: str | None = None, property_name: str | None = None) -> str | None:
    if name is not None:
        matches = document.xpath("//meta[@name=$value]/@content", value=name)
    else:
        matches = document.xpath("//meta[@property=$value]/@content", value=property_name)

    if not matches:
        return None

    return str(matches[0]).strip() or None
