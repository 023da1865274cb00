import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx
import pytest

# Make the src layout importable without installing the package
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from link_checker.fetch import Fetcher
from link_checker.parsing import MarkdownParser
from link_checker.resilience import RetryPolicy


class MockSite:
    """httpx.MockTransport handler serving canned pages by exact URL.

    A page is either an HTML string (served as 200 text/html), a tuple
    ``(status, text, headers)`` or a callable taking the request.
    Unknown URLs answer 404.
    """

    def __init__(self, pages: Optional[Dict[str, object]] = None):
        self.pages = dict(pages or {})
        self.requests: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        page = self.pages.get(url)
        if page is None:
            return httpx.Response(404, text="not found")
        if callable(page):
            return page(request)
        if isinstance(page, tuple):
            status, text, headers = page
            return httpx.Response(status, text=text, headers=headers)
        return httpx.Response(200, text=page, headers={"content-type": "text/html"})


@pytest.fixture
def docs_tree(tmp_path) -> Callable[[Dict[str, str]], Path]:
    """Write ``{relative path: content}`` under tmp_path and return the root."""

    def _make(files: Dict[str, str]) -> Path:
        for rel, content in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return tmp_path

    return _make


@pytest.fixture
def make_fetcher() -> Callable[..., Fetcher]:
    """Fetcher backed by a MockTransport, retrying without delay."""

    def _make(handler, max_attempts: int = 3) -> Fetcher:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler), follow_redirects=True
        )
        return Fetcher(client=client, policy=RetryPolicy(max_attempts=max_attempts, delay=0))

    return _make


@pytest.fixture
def parser() -> MarkdownParser:
    return MarkdownParser()
