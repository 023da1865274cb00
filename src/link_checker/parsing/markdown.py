"""
Markdown documents to links and anchors.

Documents are rendered with Python-Markdown (raw HTML passes through) and the
rendered HTML is read with BeautifulSoup. Bare URLs become links through
``pymdownx.magiclink``, but only when they carry a scheme: magiclink also links
``www.`` hosts, and those are unwrapped again. Headings get ids the way the
documentation site generator slugifies them, with ``-1``, ``-2``, ... appended
to repeated slugs.
"""
from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import markdown
from bs4 import BeautifulSoup

logger = logging.getLogger("link_checker.parsing.markdown")

ID_TAGS = ["section", "h1", "h2", "h3", "h4", "h5", "h6", "div", "a"]
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
MARKDOWN_EXTENSIONS = ["attr_list", "fenced_code", "tables", "pymdownx.magiclink"]

_CONTROL_RE = re.compile(r"[\u0000-\u001f]")
_SPECIAL_RE = re.compile(r"[\s~`!@#$%^&*()\-_+=\[\]{}|\\;:\"'“”‘’<>,.?/]+")
_COMBINING_RE = re.compile("[\\u0300-\\u036f]")


def slugify(text: str) -> str:
    """Heading text to anchor id."""
    s = unicodedata.normalize("NFKD", text)
    s = _COMBINING_RE.sub("", s)
    s = _CONTROL_RE.sub("", s)
    s = _SPECIAL_RE.sub("-", s)
    s = re.sub(r"-{2,}", "-", s).strip("-")
    s = re.sub(r"^(\d)", r"_\1", s)
    return s.lower()


@dataclass
class ParsedDocument:
    links: List[str] = field(default_factory=list)
    anchors: Set[str] = field(default_factory=set)
    html: str = ""


def _assign_heading_ids(soup: BeautifulSoup) -> None:
    seen: Dict[str, int] = {}
    for tag in soup.find_all(ID_TAGS):
        existing = tag.get("id")
        if existing:
            seen.setdefault(existing, 0)
    for heading in soup.find_all(HEADING_TAGS):
        if heading.get("id"):
            continue
        slug = slugify(heading.get_text())
        if not slug:
            continue
        if slug in seen:
            seen[slug] += 1
            unique = f"{slug}-{seen[slug]}"
            while unique in seen:
                seen[slug] += 1
                unique = f"{slug}-{seen[slug]}"
            slug = unique
        seen[slug] = 0
        heading["id"] = slug


def _unwrap_fuzzy_links(soup: BeautifulSoup) -> None:
    # magiclink renders a bare "www.host/x" as <a href="http://www.host/x">www.host/x</a>.
    for a in soup.find_all("a"):
        text = a.get_text()
        if text.startswith("www") and a.get("href") == "http://" + text:
            a.unwrap()


def get_anchors(soup: BeautifulSoup, include_href: bool = True) -> Set[str]:
    """Element ids of the allowlisted tags, plus ``href="#..."`` targets if asked."""
    anchors: Set[str] = set()
    for tag in soup.find_all(ID_TAGS):
        element_id = tag.get("id")
        if element_id is not None and element_id.strip() != "":
            anchors.add(element_id)
    if include_href:
        for a in soup.find_all("a"):
            href = a.get("href")
            if href is not None and href.startswith("#") and len(href) > 1:
                anchors.add(href[1:])
    return anchors


def get_links(soup: BeautifulSoup) -> List[str]:
    """Hrefs of all links in document order, without duplicates."""
    links: List[str] = []
    seen: Set[str] = set()
    for a in soup.find_all("a"):
        href = a.get("href")
        if href is None or href in seen:
            continue
        seen.add(href)
        links.append(href)
    return links


class MarkdownParser:
    """Default ``DocumentParserProtocol`` implementation."""

    def __init__(self, extensions: Optional[List[str]] = None):
        self.extensions = list(extensions if extensions is not None else MARKDOWN_EXTENSIONS)

    def render(self, content: str) -> str:
        # A fresh Markdown instance per call keeps parser state out of the next document.
        return markdown.markdown(content, extensions=self.extensions)

    def _soup(self, content: str) -> BeautifulSoup:
        soup = BeautifulSoup(self.render(content), "html.parser")
        _unwrap_fuzzy_links(soup)
        _assign_heading_ids(soup)
        return soup

    def parse(self, content: str) -> ParsedDocument:
        soup = self._soup(content)
        # Local documents define their anchors through ids only; their own
        # same-page hrefs are what gets checked, not what gets trusted.
        return ParsedDocument(
            links=get_links(soup),
            anchors=get_anchors(soup, include_href=False),
            html=str(soup),
        )

    def links_from_text(self, content: str) -> List[str]:
        return get_links(self._soup(content))

    def anchors_from_html(self, html: str, include_href: bool = True) -> Set[str]:
        soup = BeautifulSoup(html, "html.parser")
        return get_anchors(soup, include_href=include_href)
