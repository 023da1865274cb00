"""Protocol definitions for dependency injection."""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, Set, runtime_checkable


@runtime_checkable
class DocumentParserProtocol(Protocol):
    """Turns Markdown text into links and the anchors it defines."""

    def parse(self, content: str) -> Any:
        """Return an object with ``links`` (ordered, unique) and ``anchors``."""
        ...

    def links_from_text(self, content: str) -> List[str]:
        """Return only the hrefs found in the Markdown text."""
        ...

    def anchors_from_html(self, html: str, include_href: bool = True) -> Set[str]:
        """Return element ids (and optionally ``href="#..."`` targets) of an HTML document."""
        ...


@runtime_checkable
class IssueCommentsClient(Protocol):
    """Lists the comments of a GitHub issue or pull request."""

    async def fetch_issue_comments(
        self, owner: str, repo: str, number: int
    ) -> List[Dict[str, Any]]:
        """Return the comments, each a mapping carrying at least an ``id``."""
        ...
