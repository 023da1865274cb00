"""Fetching external pages with retries and turning responses into issues.

Network failures and 408/5xx responses are retried with a fixed delay. When
no response could be obtained at all the caller gets ``response=None``, which
is reported as ``no_response`` and never confused with a non-OK status.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set
from urllib.parse import urljoin, urlsplit

import httpx

from link_checker.constants import (
    ACCEPTABLE_NOT_OK_STATUS,
    CLOUDFLARE_PROTECTED_HOSTNAMES,
    FETCH_HEADERS,
    MANUAL_REDIRECTIONS,
)
from link_checker.core.protocols import DocumentParserProtocol, IssueCommentsClient
from link_checker.heuristics import is_valid_redirection
from link_checker.issues import (
    EmptyDom,
    ExternalLinkIssue,
    Inaccessible,
    NoResponse,
    NotOkResponse,
    Redirected,
)
from link_checker.links import transform_url
from link_checker.resilience import (
    ProviderError,
    RetryPolicy,
    build_async_retrying,
    log_event,
)

logger = logging.getLogger("link_checker.fetch")

_DEFAULT_TIMEOUT = 30.0
CLOUDFLARE_REASON = (
    "The website is protected by Cloudflare's DDoS protection and refused the "
    "automated request. Check the link manually."
)


@dataclass
class FetchResult:
    response: Optional[httpx.Response]
    redirected: bool = False
    redirected_url: Optional[str] = None


@dataclass
class ExternalCheckResult:
    issues: List[ExternalLinkIssue] = field(default_factory=list)
    anchors: Optional[Set[str]] = None


class Fetcher:
    """GETs URLs through a shared ``httpx.AsyncClient`` under a retry policy."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        policy: Optional[RetryPolicy] = None,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers=FETCH_HEADERS, timeout=timeout, follow_redirects=True
        )
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self.request_count = 0

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _get(
        self, url: str, follow_redirects: bool, headers: Optional[Dict[str, str]]
    ) -> httpx.Response:
        self.request_count += 1
        response = await self.client.get(
            url,
            headers=headers,
            follow_redirects=follow_redirects,
            timeout=self.timeout,
        )
        # Read the body inside the retried call so a dropped connection is retried too.
        await response.aread()
        return response

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> FetchResult:
        manual = url in MANUAL_REDIRECTIONS
        retrying = build_async_retrying(self.policy)
        try:
            response = await retrying(self._get, url, not manual, headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Request to %s failed: %r", url, exc)
            log_event("request_failed", {"url": url, "error": repr(exc)})
            return FetchResult(response=None)

        if response is None:
            logger.error("Couldn't get a proper response from %s", url)
            return FetchResult(response=None)

        if manual:
            location = response.headers.get("location")
            if response.is_redirect and location:
                return FetchResult(response, True, urljoin(url, location))
            return FetchResult(response, False, url)

        return FetchResult(response, bool(response.history), str(response.url))


def is_cloudflare_blocked(response: httpx.Response, url: str) -> bool:
    """Detect Cloudflare's bot challenge instead of the real page."""
    if response.headers.get("cf-mitigated", "").lower() == "challenge":
        return True
    if response.headers.get("server", "").lower() != "cloudflare":
        return False
    if response.status_code not in (403, 503):
        return False
    hostname = urlsplit(url).hostname or ""
    return any(fnmatch.fnmatch(hostname, pattern) for pattern in CLOUDFLARE_PROTECTED_HOSTNAMES)


def parse_github_issue_url(url: str) -> Optional[Dict[str, object]]:
    """``github.com/OWNER/REPO/(issues|pull)/N`` to its parts, otherwise None."""
    parts = urlsplit(url)
    if parts.hostname != "github.com":
        return None
    segments = [s for s in parts.path.split("/") if s]
    if len(segments) < 4 or segments[2] not in ("issues", "pull") or not segments[3].isdigit():
        return None
    return {"owner": segments[0], "repo": segments[1], "number": int(segments[3])}


async def get_issue_comment_anchors(client: IssueCommentsClient, url: str) -> Set[str]:
    """``issuecomment-<id>`` anchors of a GitHub issue or pull request page."""
    target = parse_github_issue_url(url)
    if target is None:
        return set()
    try:
        comments = await client.fetch_issue_comments(
            target["owner"], target["repo"], target["number"]
        )
    except ProviderError as exc:
        logger.warning("Could not list comments of %s: %s", url, exc)
        return set()
    return {f"issuecomment-{comment['id']}" for comment in comments if "id" in comment}


async def check_external_url(
    root: str,
    fetcher: Fetcher,
    parser: DocumentParserProtocol,
    comments_client: Optional[IssueCommentsClient] = None,
) -> ExternalCheckResult:
    """Fetch ``root`` once and return its issues and, if the page is usable, its anchors."""
    url = transform_url(root)
    result = await fetcher.fetch(url)
    response = result.response
    if response is None:
        return ExternalCheckResult(issues=[NoResponse(reference=root)])

    if is_cloudflare_blocked(response, url):
        logger.warning("Cloudflare blocked the request to %s", url)
        return ExternalCheckResult(issues=[Inaccessible(reference=root, reason=CLOUDFLARE_REASON)])

    issues: List[ExternalLinkIssue] = []
    if result.redirected and result.redirected_url is not None:
        if not is_valid_redirection(url, result.redirected_url):
            issues.append(Redirected(from_url=root, to_url=result.redirected_url))

    if not (response.is_success or response.is_redirect):
        if ACCEPTABLE_NOT_OK_STATUS.get(root) != response.status_code:
            logger.info("NOT OK %s %s: %s", response.status_code, response.reason_phrase, root)
            issues.append(
                NotOkResponse(
                    reference=root,
                    status=response.status_code,
                    status_text=response.reason_phrase,
                )
            )
        return ExternalCheckResult(issues=issues)

    if response.is_redirect:
        # Manually inspected redirect: the target is what matters, not the body.
        return ExternalCheckResult(issues=issues, anchors=set())

    content_type = response.headers.get("content-type")
    if not content_type:
        logger.debug("No content-type header for %s, parsing as HTML anyway", url)
    elif "text/html" not in content_type:
        logger.debug("Content-type of %s is %s, parsing as HTML anyway", url, content_type)

    text = response.text
    if not text.strip():
        issues.append(EmptyDom(reference=root))
        return ExternalCheckResult(issues=issues)

    anchors = parser.anchors_from_html(text, include_href=True)
    if comments_client is not None:
        anchors |= await get_issue_comment_anchors(comments_client, url)
    return ExternalCheckResult(issues=issues, anchors=anchors)
