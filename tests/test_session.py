import os

import pytest

from conftest import MockSite
from link_checker.core.config import CheckerConfig, LocalAlternativeRule
from link_checker.issues import (
    EmptyAnchor,
    LinkedFileNotFound,
    LocalAltAvailable,
    MissingAnchor,
    MissingGithubComment,
    NotOkResponse,
    UnknownLinkFormat,
)
from link_checker.resilience import CrawlCancelledError
from link_checker.session import CrawlSession, read_markdown_files

PAGE = '<h1 id="top">Top</h1><h2 id="intro">Intro</h2>'


def _session(root, site, make_fetcher, **config):
    return CrawlSession(str(root), CheckerConfig(**config), fetcher=make_fetcher(site))


@pytest.mark.asyncio
async def test_crawl_reports_local_and_external_issues(docs_tree, make_fetcher):
    root = docs_tree(
        {
            "README.md": (
                "# Home\n\n"
                "[Guide](./guide.md#setup)\n"
                "[Bad](./guide.md#nope)\n"
                "[Ext](https://example.com/page#intro)\n"
                "[Ext2](https://example.com/page#missing)\n"
                "[Self](#home)\n"
                "[Weird](ftp://example.com/file)\n"
                "[Mail](mailto:team@example.com)\n"
            ),
            "guide.md": (
                "# Guide\n\n## Setup\n\n"
                "[Ext again](https://example.com/page)\n"
                "[Home](./README.md#home)\n"
            ),
        }
    )
    site = MockSite({"https://example.com/page": PAGE})
    session = _session(root, site, make_fetcher)
    issues = await session.run()

    readme = os.path.join(str(root), "README.md")
    assert set(issues) == {readme}
    assert set(issues[readme]) == {
        UnknownLinkFormat(reference="ftp://example.com/file"),
        MissingAnchor(
            reference="./guide.md#nope", anchor="nope", all_anchors=frozenset({"guide", "setup"})
        ),
        MissingAnchor(
            reference="https://example.com/page#missing",
            anchor="missing",
            all_anchors=frozenset({"top", "intro"}),
        ),
    }
    # Each external root is fetched once for the whole crawl
    assert site.requests == ["https://example.com/page"]
    assert session.fetch_count == 1
    assert session.file_count == 2


@pytest.mark.asyncio
async def test_bare_url_anchor_is_checked(docs_tree, make_fetcher):
    root = docs_tree({"a.md": "Read https://example.com/a#sec2 now.\n"})
    site = MockSite({"https://example.com/a": '<h2 id="sec1">One</h2>'})
    issues = await _session(root, site, make_fetcher).run()

    assert set(issues[os.path.join(str(root), "a.md")]) == {
        MissingAnchor(
            reference="https://example.com/a#sec2",
            anchor="sec2",
            all_anchors=frozenset({"sec1"}),
        )
    }


@pytest.mark.asyncio
async def test_cached_external_issues_reach_every_document(docs_tree, make_fetcher):
    root = docs_tree(
        {
            "a.md": "[gone](https://example.com/gone)\n",
            "b.md": "[gone again](https://example.com/gone#part)\n",
        }
    )
    site = MockSite()
    session = _session(root, site, make_fetcher)
    issues = await session.run()

    a, b = (os.path.join(str(root), name) for name in ("a.md", "b.md"))
    expected = NotOkResponse(reference="https://example.com/gone", status=404, status_text="Not Found")
    assert issues[a] == [expected]
    assert expected in issues[b]
    # A failed fetch leaves no anchors, so the pinned anchor is missing too
    assert any(isinstance(i, MissingAnchor) and i.anchor == "part" for i in issues[b])
    assert len(site.requests) == 1


@pytest.mark.asyncio
async def test_result_does_not_depend_on_document_order(docs_tree, make_fetcher):
    files = {
        "a.md": "[to b](./b.md#later)\n",
        "b.md": "# Title\n\n## Later\n\n[to a](./a.md#gone)\n",
    }
    root = docs_tree(files)
    issues = await _session(root, MockSite(), make_fetcher).run()
    b = os.path.join(str(root), "b.md")
    a = os.path.join(str(root), "a.md")
    assert a not in issues
    assert [i.anchor for i in issues[b]] == ["gone"]


@pytest.mark.asyncio
async def test_empty_anchor_and_missing_file(docs_tree, make_fetcher):
    root = docs_tree(
        {
            "a.md": "[empty](./b.md#)\n[missing](./nope.md)\n[bare](#)\n",
            "b.md": "# B\n",
        }
    )
    issues = await _session(root, MockSite(), make_fetcher).run()
    a = os.path.join(str(root), "a.md")
    kinds = {type(issue) for issue in issues[a]}
    assert EmptyAnchor(reference="./b.md#") in issues[a]
    assert LinkedFileNotFound in kinds
    # A bare '#' is an anchor that can never exist
    assert MissingAnchor(reference="#", anchor="", all_anchors=frozenset()) in issues[a]


@pytest.mark.asyncio
async def test_ref_directory_is_skipped_unless_included(docs_tree, make_fetcher):
    root = docs_tree(
        {
            "README.md": "[api](./ref/api.md#run)\n",
            "ref/api.md": "# API\n\n## Run\n\n[broken](./missing.md)\n",
            "node_modules/pkg/README.md": "[broken](./missing.md)\n",
        }
    )
    skipped = await _session(root, MockSite(), make_fetcher).run()
    assert skipped == {}

    included = await _session(root, MockSite(), make_fetcher, include_ref_directory=True).run()
    assert list(included) == [os.path.join(str(root), "ref", "api.md")]


@pytest.mark.asyncio
async def test_local_alternative_rule(docs_tree, make_fetcher):
    root = docs_tree({"a.md": "[remote](https://docs.example.com/guide)\n"})
    site = MockSite({"https://docs.example.com/guide": PAGE})
    session = _session(
        root,
        site,
        make_fetcher,
        local_alternatives=[
            LocalAlternativeRule(pattern=r"^https://docs\.example\.com/", reason="Link the local page.")
        ],
    )
    issues = await session.run()
    assert issues[os.path.join(str(root), "a.md")] == [
        LocalAltAvailable(reference="https://docs.example.com/guide", reason="Link the local page.")
    ]


class FakeComments:
    async def fetch_issue_comments(self, owner, repo, number):
        return [{"id": 1}]


@pytest.mark.asyncio
async def test_missing_issue_comment(docs_tree, make_fetcher):
    root = docs_tree(
        {
            "a.md": (
                "[ok](https://github.com/o/r/issues/5#issuecomment-1)\n"
                "[gone](https://github.com/o/r/issues/5#issuecomment-2)\n"
            )
        }
    )
    site = MockSite({"https://github.com/o/r/issues/5": PAGE})
    session = CrawlSession(
        str(root), CheckerConfig(), fetcher=make_fetcher(site), comments_client=FakeComments()
    )
    issues = await session.run()
    assert issues[os.path.join(str(root), "a.md")] == [
        MissingGithubComment(
            reference="https://github.com/o/r/issues/5#issuecomment-2", anchor="issuecomment-2"
        )
    ]


class FakeGithub:
    def __init__(self):
        self.calls = 0

    async def get_branches(self, repository):
        return ["main"]

    async def get_rendered_file(self, repository, path, branch):
        self.calls += 1
        return '<h2><a id="user-content-usage" href="#usage"></a>Usage</h2>'

    async def get_readme(self, repository, path, branch):
        return None


@pytest.mark.asyncio
async def test_github_file_links_use_rendered_content(docs_tree, make_fetcher):
    root = docs_tree(
        {
            "a.md": (
                "[ok](https://github.com/o/r/blob/main/docs/x.md#usage)\n"
                "[bad](https://github.com/o/r/blob/main/docs/x.md#nope)\n"
            )
        }
    )
    site = MockSite()
    github = FakeGithub()
    session = CrawlSession(str(root), CheckerConfig(), fetcher=make_fetcher(site), github=github)
    issues = await session.run()
    [issue] = issues[os.path.join(str(root), "a.md")]
    assert issue.reference == "https://github.com/o/r/blob/main/docs/x.md#nope"
    assert github.calls == 1
    assert site.requests == []


@pytest.mark.asyncio
async def test_cancelled_crawl_raises(docs_tree, make_fetcher):
    root = docs_tree({"a.md": "# A\n"})
    session = _session(root, MockSite(), make_fetcher)
    session.cancel()
    with pytest.raises(CrawlCancelledError):
        await session.run()
    assert session.file_count == 0


@pytest.mark.asyncio
async def test_read_markdown_files(docs_tree, make_fetcher):
    root = docs_tree({"a.md": "[x](./b.md)\n"})
    issues = await read_markdown_files(str(root), fetcher=make_fetcher(MockSite()))
    assert isinstance(issues[os.path.join(str(root), "a.md")][0], LinkedFileNotFound)
