from textwrap import dedent

import pytest

from newsletter_digest_mcp.clients.extract.article import ArticleExtractor, ContentSelector, clean_text
from newsletter_digest_mcp.errors import ExtractionError

LONG_SENTENCE = "The central bank held interest rates steady on Tuesday, citing slowing inflation."


@pytest.fixture
def extractor():
    return ArticleExtractor()


def test_clean_text():
    assert clean_text("  Markets   rallied\n\n today.  ") == "Markets rallied today."
    assert clean_text("Stocks rose. ADVERTISEMENT Bonds fell. subscribe now") == "Stocks rose. Bonds fell. now"
    assert clean_text("") == ""


def test_extract_prefers_article_paragraphs(extractor: ArticleExtractor):
    html_page = f"""
    <html>
        <head><title> Rates held steady </title></head>
        <body>
            <div class="sidebar"><p>{LONG_SENTENCE} Sidebar copy.</p></div>
            <article>
                <h2>Heading outside paragraphs</h2>
                <p>{LONG_SENTENCE}</p>
                <p>   </p>
                <p>Officials expect two cuts next year.</p>
                <script>var tracking = "{LONG_SENTENCE}";</script>
            </article>
        </body>
    </html>
    """

    page = extractor.extract(dedent(html_page))

    assert page.content == f"{LONG_SENTENCE} Officials expect two cuts next year."
    assert page.metadata.title == "Rates held steady"


def test_extract_uses_container_text_without_paragraphs(extractor: ArticleExtractor):
    html_page = f"""
    <html><body>
        <div class="story-body">{LONG_SENTENCE}<br>Second line of the story.</div>
    </body></html>
    """

    page = extractor.extract(html_page)

    assert page.content == f"{LONG_SENTENCE}Second line of the story."


def test_extract_skips_short_containers(extractor: ArticleExtractor):
    html_page = f"""
    <html><body>
        <article><p>Too short.</p></article>
        <main><p>{LONG_SENTENCE}</p></main>
    </body></html>
    """

    page = extractor.extract(html_page)

    assert page.content == LONG_SENTENCE


def test_extract_falls_back_to_long_page_paragraphs(extractor: ArticleExtractor):
    html_page = f"""
    <html><body>
        <div><p>Short caption.</p></div>
        <div><p>{LONG_SENTENCE}</p></div>
        <section><p>Analysts said the decision was widely expected by markets.</p></section>
    </body></html>
    """

    page = extractor.extract(html_page)

    assert page.content == f"{LONG_SENTENCE} Analysts said the decision was widely expected by markets."


def test_extract_custom_selectors():
    extractor = ArticleExtractor(selectors=[ContentSelector(name=".wire-copy", xpath="//*[@class='wire-copy']")])

    html_page = f"""
    <html><body>
        <article><p>{LONG_SENTENCE} From the article element.</p></article>
        <div class="wire-copy"><p>{LONG_SENTENCE} From the wire.</p></div>
    </body></html>
    """

    page = extractor.extract(html_page)

    assert page.content == f"{LONG_SENTENCE} From the wire."


def test_extract_metadata_fallbacks(extractor: ArticleExtractor):
    html_page = """
    <html><head>
        <meta property="og:title" content="Open Graph Title">
        <meta property="og:description" content="What happened">
        <meta property="article:author" content="A. Writer">
    </head><body><h1>Heading</h1></body></html>
    """

    metadata = extractor.extract(html_page).metadata

    assert metadata.title == "Open Graph Title"
    assert metadata.description == "What happened"
    assert metadata.author == "A. Writer"


def test_extract_metadata_h1_title(extractor: ArticleExtractor):
    metadata = extractor.extract("<html><body><h1> Only a heading </h1></body></html>").metadata

    assert metadata.title == "Only a heading"
    assert metadata.description is None
    assert metadata.author is None


def test_preview_truncates_at_150_words(extractor: ArticleExtractor):
    words = [f"word{index}" for index in range(200)]
    page = extractor.extract(f"<html><body><article><p>{' '.join(words)}</p></article></body></html>")

    assert page.word_count == 200
    assert page.preview == " ".join(words[:150]) + "..."


def test_preview_short_content(extractor: ArticleExtractor):
    page = extractor.extract(f"<html><body><article><p>{LONG_SENTENCE}</p></article></body></html>")

    assert page.preview == LONG_SENTENCE
    assert page.word_count == len(LONG_SENTENCE.split())


def test_extract_empty_document(extractor: ArticleExtractor):
    with pytest.raises(ExtractionError):
        _ = extractor.extract("", url="https://news.test/empty")


def test_extract_page_with_xml_declaration(extractor: ArticleExtractor):
    html_page = f"""<?xml version="1.0" encoding="utf-8"?>
    <!DOCTYPE html>
    <html xmlns="http://www.w3.org/1999/xhtml">
        <head><title>Rates held steady</title></head>
        <body><article><p>{LONG_SENTENCE}</p></article></body>
    </html>
    """

    page = extractor.extract(html_page, url="https://news.test/xhtml")

    assert page.content == LONG_SENTENCE
    assert page.metadata.title == "Rates held steady"
