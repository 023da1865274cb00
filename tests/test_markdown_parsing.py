from link_checker.core.protocols import DocumentParserProtocol
from link_checker.parsing import MarkdownParser, slugify


def test_slugify():
    assert slugify("Hello World") == "hello-world"
    assert slugify("Café au lait") == "cafe-au-lait"
    assert slugify("What's new?") == "what-s-new"
    assert slugify("1. Getting started") == "_1-getting-started"


def test_parse_collects_links_in_order_without_duplicates(parser):
    doc = parser.parse(
        "# Title\n\n"
        "[one](./a.md#x) and [two](https://example.com/page) and [again](./a.md#x)\n"
    )
    assert doc.links == ["./a.md#x", "https://example.com/page"]


def test_repeated_headings_get_numbered_ids(parser):
    doc = parser.parse("# Intro\n\n## Intro\n\n### Intro\n\n## Usage\n")
    assert doc.anchors == {"intro", "intro-1", "intro-2", "usage"}


def test_explicit_heading_ids_and_raw_html(parser):
    doc = parser.parse(
        "## Setup {#install}\n\n"
        '<div id="custom-block">raw</div>\n\n'
        "Text with an <a id=\"inline-anchor\"></a> anchor.\n"
    )
    assert {"install", "custom-block", "inline-anchor"} <= doc.anchors
    assert "setup" not in doc.anchors


def test_local_same_page_hrefs_are_not_anchors(parser):
    doc = parser.parse("# Home\n\n[jump](#elsewhere)\n")
    assert "elsewhere" not in doc.anchors
    assert doc.links == ["#elsewhere"]


def test_bare_urls_with_scheme_are_links(parser):
    doc = parser.parse("See https://example.com/a#sec2 for details.\n")
    assert doc.links == ["https://example.com/a#sec2"]


def test_fuzzy_urls_and_code_blocks_are_not_links(parser):
    doc = parser.parse(
        "Visit www.example.com/plain sometime.\n\n"
        "```\n[not a link](./nowhere.md) https://example.com/code\n```\n\n"
        "Inline `https://example.com/inline` too.\n"
    )
    assert doc.links == []


def test_links_from_docstring_text(parser):
    text = "Fetches data.\n\nSee https://example.com/docs#api and [guide](https://example.com/guide).\n"
    assert parser.links_from_text(text) == [
        "https://example.com/docs#api",
        "https://example.com/guide",
    ]


def test_anchors_from_html(parser):
    html = '<h2 id="a">A</h2><a href="#b">b</a><span id="c"></span><a href="#">top</a>'
    assert parser.anchors_from_html(html) == {"a", "b"}
    assert parser.anchors_from_html(html, include_href=False) == {"a"}


def test_links_from_text(parser):
    assert parser.links_from_text("See [docs](https://example.com/docs#api).") == [
        "https://example.com/docs#api"
    ]


def test_markdown_parser_implements_protocol():
    assert isinstance(MarkdownParser(), DocumentParserProtocol)
