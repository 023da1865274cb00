"""
Links that need a special resolution path instead of a plain fetch.

GitHub renders Markdown, reStructuredText and friends client-side, so the
normal HTML response of a file or directory-README link does not contain the
headings its anchor points at. Those links are grouped here and their
rendered content is taken from the GitHub content API instead:

- ``github.com/OWNER/REPO#anchor`` and ``github.com/OWNER/REPO/tree/BRANCH/dir#anchor``
  (directory README)
- ``github.com/OWNER/REPO/blob/BRANCH/path/file.md#anchor`` (renderable file)

Branch names may contain slashes, so the branch is found by matching the
repository's branch list against the path. Results are cached per
repository, branch and file: ``ceil(branches / 100)`` API calls per
repository plus one per distinct file.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Set, Tuple, Union
from urllib.parse import urlsplit

from link_checker.core.protocols import DocumentParserProtocol
from link_checker.github import GithubClient
from link_checker.issues import EmptyDom, ExternalLinkIssue, NotOkResponse
from link_checker.links import parse_link
from link_checker.resilience import GithubAPIError

logger = logging.getLogger("link_checker.group_links")

README_ANCHOR = "readme"


@dataclass(frozen=True)
class GithubFileLink:
    repository: str
    path: str
    original_reference: str
    is_dir_readme: bool


@dataclass
class GroupedLinks:
    github_renderable_files: List[GithubFileLink] = field(default_factory=list)
    other: List[str] = field(default_factory=list)


@dataclass
class GroupResolution:
    root: str
    anchor: Optional[str]
    anchors: Optional[Set[str]] = None
    issues: List[ExternalLinkIssue] = field(default_factory=list)
    skipped: bool = False


@dataclass
class RepositoryCache:
    all_branches: List[str]
    # branch -> filepath -> anchors or issues
    files: Dict[str, Dict[str, Union[Set[str], List[ExternalLinkIssue]]]] = field(
        default_factory=dict
    )


def _segments(path: str) -> List[str]:
    segments = path.split("/")
    if segments and segments[-1] == "":
        segments.pop()
    return segments


def is_github_readme_with_anchor_url(url: str) -> bool:
    parts = urlsplit(url)
    if parts.hostname != "github.com" or len(parts.fragment) < 1:
        return False
    if parts.fragment == README_ANCHOR:
        return True
    segments = _segments(parts.path)
    return len(segments) == 3 or (len(segments) >= 5 and segments[3] == "tree")


def is_github_renderable_file_with_anchor_url(url: str) -> bool:
    parts = urlsplit(url)
    if parts.hostname != "github.com":
        return False
    segments = _segments(parts.path)
    return len(parts.fragment) > 0 and len(segments) > 5 and segments[3] == "blob"


def parse_github_url(url: str) -> Tuple[str, str]:
    """Return ``(owner/repo, rest-of-path-after-tree-or-blob)``."""
    segments = urlsplit(url).path.split("/")
    while segments and segments[-1].strip() == "":
        segments.pop()
    repository = "/".join(segments[1:3])
    path = "" if len(segments) <= 3 else "/".join(segments[4:])
    return repository, path


def parse_github_filepath_with_branch(path: str, branches: List[str]) -> Tuple[str, str]:
    """Split ``path`` into ``(branch, filepath)``.

    The longest branch whose segments are a prefix of the path's segments
    wins. An empty branch means none matched and the default branch is used.
    Without a branch list the first segment is taken as the branch.
    """
    if not branches:
        branch, _, filepath = path.partition("/")
        return branch, filepath
    path_segments = path.split("/")
    best = ""
    for branch in sorted(branches):
        branch_segments = branch.split("/")
        if path_segments[: len(branch_segments)] != branch_segments:
            continue
        if len(branch_segments) > len(best.split("/")) or not best:
            best = branch
    filepath = path[len(best) + 1:] if best else path
    return best, filepath


def group_links(urls: List[str]) -> GroupedLinks:
    grouped = GroupedLinks()
    for href in urls:
        if is_github_readme_with_anchor_url(href):
            repository, path = parse_github_url(href)
            grouped.github_renderable_files.append(GithubFileLink(repository, path, href, True))
        elif is_github_renderable_file_with_anchor_url(href):
            repository, path = parse_github_url(href)
            grouped.github_renderable_files.append(GithubFileLink(repository, path, href, False))
        else:
            grouped.other.append(href)
    return grouped


class GroupedLinksResolver:
    """Resolves grouped links and remembers every result for the whole crawl."""

    def __init__(self, github: GithubClient, parser: DocumentParserProtocol) -> None:
        self.github = github
        self.parser = parser
        self.repositories: Dict[str, RepositoryCache] = {}
        self.api_calls = 0

    async def _repository(self, repository: str) -> RepositoryCache:
        cache = self.repositories.get(repository)
        if cache is None:
            try:
                branches = await self.github.get_branches(repository)
            except GithubAPIError as exc:
                logger.warning("Could not list branches of %s: %s", repository, exc)
                branches = []
            cache = RepositoryCache(all_branches=branches)
            self.repositories[repository] = cache
        return cache

    async def _fetch_file(self, link: GithubFileLink, branch: str, filepath: str, root: str):
        self.api_calls += 1
        try:
            if link.is_dir_readme:
                html = await self.github.get_readme(link.repository, filepath, branch)
            else:
                html = await self.github.get_rendered_file(link.repository, filepath, branch)
        except GithubAPIError as exc:
            return [NotOkResponse(reference=root, status=exc.status, status_text=exc.status_text)]
        if html is None:
            return [NotOkResponse(reference=root, status=404, status_text="Not found")]
        if not html.strip():
            return [EmptyDom(reference=root)]
        return self.parser.anchors_from_html(html, include_href=True)

    async def resolve(self, link: GithubFileLink) -> GroupResolution:
        root, anchor = parse_link(link.original_reference)
        if link.is_dir_readme and anchor == README_ANCHOR:
            return GroupResolution(root=root, anchor=anchor, skipped=True)

        cache = await self._repository(link.repository)
        branch, filepath = parse_github_filepath_with_branch(link.path, cache.all_branches)
        files = cache.files.setdefault(branch, {})
        if filepath not in files:
            logger.info("Resolving %s through the GitHub API", link.original_reference)
            files[filepath] = await self._fetch_file(link, branch, filepath, root)

        cached = files[filepath]
        if isinstance(cached, set):
            return GroupResolution(root=root, anchor=anchor, anchors=cached)
        # The same file can be linked through differently spelled URLs.
        issues = [replace(issue, reference=root) for issue in cached]
        return GroupResolution(root=root, anchor=anchor, issues=issues)
