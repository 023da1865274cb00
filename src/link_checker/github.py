"""Minimal GitHub REST client: branches, rendered files and issue comments."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import httpx

from link_checker.constants import DEFAULT_GITHUB_API_ROOT, GITHUB_API_VERSION
from link_checker.fetch import Fetcher
from link_checker.resilience import GithubAPIError, classify_status, log_provider_error

logger = logging.getLogger("link_checker.github")

JSON_MEDIA_TYPE = "application/vnd.github+json"
HTML_MEDIA_TYPE = "application/vnd.github.html"
PAGE_SIZE = 100


def _quote_path(path: str) -> str:
    # Paths come from hrefs and may already be percent-encoded.
    return quote(path, safe="/%")


class GithubClient:
    """Talks to the GitHub API through the shared fetcher.

    A token is optional. Without one the API still answers, under much
    stricter rate limits.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        token: Optional[str] = None,
        api_root: str = DEFAULT_GITHUB_API_ROOT,
    ) -> None:
        self.fetcher = fetcher
        self.token = token
        self.api_root = api_root.rstrip("/")

    def _headers(self, media_type: str) -> Dict[str, str]:
        headers = {"Accept": media_type, "X-GitHub-Api-Version": GITHUB_API_VERSION}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        media_type: str = JSON_MEDIA_TYPE,
    ) -> Optional[httpx.Response]:
        """GET an API path. Returns None for 404 or no response; raises on other errors."""
        url = self.api_root + path
        if params:
            url += "?" + urlencode(params)
        result = await self.fetcher.fetch(url, headers=self._headers(media_type))
        response = result.response
        if response is None or response.status_code == 404:
            return None
        if not response.is_success:
            log_provider_error(
                "github",
                path,
                classify_status(response.status_code).__name__,
                f"{response.status_code} {response.reason_phrase}",
            )
            raise GithubAPIError(
                f"GitHub API request {path} failed: {response.status_code}",
                response.status_code,
                response.reason_phrase,
            )
        return response

    async def get_branches(self, repository: str) -> List[str]:
        names: List[str] = []
        page = 1
        while True:
            response = await self.request(
                f"/repos/{repository}/branches", {"per_page": PAGE_SIZE, "page": page}
            )
            branches = response.json() if response is not None else []
            names.extend(branch["name"] for branch in branches)
            if len(branches) < PAGE_SIZE:
                break
            page += 1
        logger.debug("Found %d branches in %s", len(names), repository)
        return names

    async def _get_rendered(self, path: str, branch: str) -> Optional[str]:
        params = {"ref": branch} if branch else None
        response = await self.request(path, params, media_type=HTML_MEDIA_TYPE)
        return response.text if response is not None else None

    async def get_readme(self, repository: str, path: str, branch: str) -> Optional[str]:
        """Rendered README of a directory (the repository root when ``path`` is empty)."""
        suffix = f"/{_quote_path(path)}" if path else ""
        return await self._get_rendered(f"/repos/{repository}/readme{suffix}", branch)

    async def get_rendered_file(self, repository: str, path: str, branch: str) -> Optional[str]:
        return await self._get_rendered(f"/repos/{repository}/contents/{_quote_path(path)}", branch)

    async def fetch_issue_comments(self, owner: str, repo: str, number: int) -> List[Dict[str, Any]]:
        comments: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = await self.request(
                f"/repos/{owner}/{repo}/issues/{number}/comments",
                {"per_page": PAGE_SIZE, "page": page},
            )
            batch = response.json() if response is not None else []
            comments.extend(batch)
            if len(batch) < PAGE_SIZE:
                break
            page += 1
        return comments
