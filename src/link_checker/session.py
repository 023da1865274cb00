"""
Crawl session: walks a documentation tree and collects link issues.

All state of one run lives on the session object:

- ``all_anchors``: target (file path or external root URL) -> anchors it defines
- ``used_anchors``: target -> referencing document -> {(anchor, original href)}
- ``issues``: document path -> issues found in it

Documents are processed one at a time and links within a document in
extraction order. External roots are fetched at most once; documents that
reference an already fetched root get its cached issues. Anchors are only
reconciled after the whole tree was read, so traversal order never changes
the result.
"""
from __future__ import annotations

import asyncio
import logging
import os
import re
from typing import Dict, Iterator, List, Optional, Set, Tuple

from link_checker.core.config import CheckerConfig
from link_checker.core.protocols import DocumentParserProtocol, IssueCommentsClient
from link_checker.fetch import Fetcher, check_external_url, parse_github_issue_url
from link_checker.github import GithubClient
from link_checker.group_links import GroupedLinksResolver, group_links
from link_checker.heuristics import is_valid_anchor
from link_checker.issues import (
    EmptyAnchor,
    Issue,
    LocalAltAvailable,
    MissingAnchor,
    MissingGithubComment,
    UnknownLinkFormat,
)
from link_checker.links import (
    LINK_ANCHOR,
    LINK_EXTERNAL,
    LINK_IGNORED,
    LINK_LOCAL,
    classify_link,
    parse_link,
    transform_url,
)
from link_checker.local_files import check_relative_link
from link_checker.parsing import MarkdownParser
from link_checker.resilience import CrawlCancelledError, RetryPolicy

logger = logging.getLogger("link_checker.session")

ISSUE_COMMENT_PREFIX = "issuecomment-"

UsedAnchors = Dict[str, Dict[str, Set[Tuple[str, str]]]]


class CrawlSession:
    def __init__(
        self,
        root_directory: str,
        config: Optional[CheckerConfig] = None,
        fetcher: Optional[Fetcher] = None,
        parser: Optional[DocumentParserProtocol] = None,
        github: Optional[GithubClient] = None,
        comments_client: Optional[IssueCommentsClient] = None,
    ) -> None:
        self.root_directory = os.path.abspath(root_directory)
        self.config = config or CheckerConfig()
        self.fetcher = fetcher or Fetcher(
            policy=RetryPolicy(self.config.max_retries, self.config.retry_delay),
            timeout=self.config.timeout,
        )
        self.parser = parser or MarkdownParser()
        self.github = github or GithubClient(
            self.fetcher, self.config.github_token, self.config.github_api_root
        )
        self.comments_client = comments_client
        self.resolver = GroupedLinksResolver(self.github, self.parser)
        self._local_alternatives = [
            (re.compile(rule.pattern), rule.reason) for rule in self.config.local_alternatives
        ]

        self.issues: Dict[str, List[Issue]] = {}
        self.all_anchors: Dict[str, Set[str]] = {}
        self.used_anchors: UsedAnchors = {}
        self.external_link_issues: Dict[str, List[Issue]] = {}

        self.file_count = 0
        self.link_count = {"external": 0, "local": 0}
        self.fetch_count = 0
        self._cancelled = asyncio.Event()

    # -- state helpers -------------------------------------------------

    def cancel(self) -> None:
        """Stop the crawl before the next document."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def add_issues(self, filepath: str, issues: List[Issue]) -> None:
        if issues:
            self.issues.setdefault(filepath, []).extend(issues)

    def use_anchor(self, target: str, filepath: str, anchor: Optional[str], reference: str) -> None:
        refs = self.used_anchors.setdefault(target, {}).setdefault(filepath, set())
        if anchor is not None:
            refs.add((anchor, reference))

    # -- traversal -----------------------------------------------------

    def _is_directory_ignored(self, name: str) -> bool:
        return name in self.config.ignored_directories

    def iter_markdown_files(self, directory: str) -> Iterator[str]:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            path = os.path.join(directory, entry.name)
            if entry.is_dir():
                if self._is_directory_ignored(entry.name):
                    continue
                yield from self.iter_markdown_files(path)
            elif entry.is_file() and os.path.splitext(entry.name)[1] == ".md":
                yield path

    def _in_ref_directory(self, directory: str) -> bool:
        ref = self.config.ref_directory
        return os.path.basename(directory) == ref or os.path.basename(os.path.dirname(directory)) == ref

    async def run(self) -> Dict[str, List[Issue]]:
        for filepath in self.iter_markdown_files(self.root_directory):
            if self.cancelled:
                raise CrawlCancelledError(f"Crawl cancelled before {filepath}")
            await self.process_document(filepath)
        logger.info("Read %d markdown files", self.file_count)
        logger.info(
            "Found %d external and %d local links",
            self.link_count["external"],
            self.link_count["local"],
        )
        self.reconcile()
        return self.issues

    async def process_document(self, filepath: str) -> None:
        logger.debug("reading %s", filepath)
        directory = os.path.dirname(filepath)
        with open(filepath, "r", encoding="utf-8") as f:
            content = f.read()
        parsed = self.parser.parse(content)
        self.file_count += 1

        external: List[str] = []
        local: List[str] = []
        same_document: List[str] = []
        for link in parsed.links:
            kind = classify_link(link)
            if kind == LINK_EXTERNAL:
                external.append(link)
            elif kind == LINK_LOCAL:
                local.append(link)
            elif kind == LINK_ANCHOR:
                same_document.append(link[1:])
            elif kind == LINK_IGNORED:
                continue
            else:
                self.add_issues(filepath, [UnknownLinkFormat(reference=link)])

        self.all_anchors[filepath] = set(parsed.anchors)
        for anchor in same_document:
            self.use_anchor(filepath, filepath, anchor, "#" + anchor)

        if self._in_ref_directory(directory) and not self.config.include_ref_directory:
            return

        for link in local:
            self.link_count["local"] += 1
            await self._check_local_link(filepath, directory, link)

        grouped = group_links(external)
        for github_link in grouped.github_renderable_files:
            self.link_count["external"] += 1
            resolution = await self.resolver.resolve(github_link)
            if resolution.skipped:
                continue
            self.add_issues(filepath, resolution.issues)
            self.use_anchor(
                resolution.root, filepath, resolution.anchor, github_link.original_reference
            )
            if resolution.anchors is not None:
                self.all_anchors[resolution.root] = resolution.anchors

        for link in grouped.other:
            self.link_count["external"] += 1
            await self._check_external_link(filepath, link)

    async def _check_local_link(self, filepath: str, directory: str, link: str) -> None:
        result = check_relative_link(
            link,
            self.root_directory,
            directory,
            index_file=self.config.index_file,
            clean_url=self.config.clean_url,
            allow_html_extension=self.config.allow_html_extension,
        )
        self.add_issues(filepath, result.issues)
        if result.anchor is None:
            return
        if result.anchor == "":
            self.add_issues(filepath, [EmptyAnchor(reference=link)])
            return
        self.use_anchor(result.path, filepath, result.anchor, link)

    async def _check_external_link(self, filepath: str, link: str) -> None:
        root, anchor = parse_link(link)

        cached = self.external_link_issues.get(root)
        if cached:
            self.add_issues(filepath, cached)

        for pattern, reason in self._local_alternatives:
            if pattern.search(root):
                self.add_issues(filepath, [LocalAltAvailable(reference=link, reason=reason)])

        if root in self.used_anchors:
            self.use_anchor(root, filepath, anchor, link)
            return
        self.use_anchor(root, filepath, anchor, link)

        self.fetch_count += 1
        logger.info("fetch (%d) %s", self.fetch_count, transform_url(root))
        checked = await check_external_url(root, self.fetcher, self.parser, self.comments_client)
        if checked.issues:
            self.external_link_issues[root] = list(checked.issues)
            self.add_issues(filepath, checked.issues)
        if checked.anchors is not None:
            self.all_anchors[root] = checked.anchors

    # -- reconciliation ------------------------------------------------

    def find_missing_anchors(self) -> Dict[str, List[Issue]]:
        missing: Dict[str, List[Issue]] = {}
        for target, mentions in self.used_anchors.items():
            known = self.all_anchors.get(target, set())
            frozen = frozenset(known)
            for filepath, refs in mentions.items():
                for anchor, reference in sorted(refs):
                    if is_valid_anchor(known, target, anchor):
                        continue
                    if (
                        self.comments_client is not None
                        and anchor.startswith(ISSUE_COMMENT_PREFIX)
                        and parse_github_issue_url(target) is not None
                    ):
                        issue: Issue = MissingGithubComment(reference=reference, anchor=anchor)
                    else:
                        issue = MissingAnchor(reference=reference, anchor=anchor, all_anchors=frozen)
                    missing.setdefault(filepath, []).append(issue)
        return missing

    def reconcile(self) -> None:
        for filepath, issues in self.find_missing_anchors().items():
            self.add_issues(filepath, issues)


async def read_markdown_files(
    root_directory: str, config: Optional[CheckerConfig] = None, **kwargs
) -> Dict[str, List[Issue]]:
    """Crawl ``root_directory`` with a fresh session and return issues per document."""
    session = CrawlSession(root_directory, config, **kwargs)
    try:
        return await session.run()
    finally:
        await session.fetcher.aclose()
