"""
Checking the links in a Python module's docstrings.

The module (a local file or an http(s) URL) is parsed with ``ast``. Docstrings
of the module and of its public symbols are read as Markdown; every
http(s) link found is checked once per root, just like the links of a
documentation tree.
"""
from __future__ import annotations

import ast
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple, Union

from link_checker.core.protocols import DocumentParserProtocol
from link_checker.fetch import Fetcher, check_external_url
from link_checker.github import GithubClient
from link_checker.group_links import GroupedLinksResolver, group_links
from link_checker.heuristics import is_valid_anchor
from link_checker.issues import Issue, MissingAnchor
from link_checker.links import LINK_EXTERNAL, can_parse_url, classify_link, parse_link
from link_checker.resilience import LinkCheckerError

logger = logging.getLogger("link_checker.pydoc_links")

Definition = Union[ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef]


@dataclass(frozen=True)
class DocLinkLocation:
    filename: str
    line: int
    col: int
    symbol: Optional[str] = None

    def pretty(self) -> str:
        where = f"{self.filename}:{self.line}:{self.col}"
        return f"{where} in {self.symbol}" if self.symbol else where


@dataclass
class DocLinkIssue:
    issue: Issue
    locations: List[DocLinkLocation] = field(default_factory=list)


@dataclass
class Docstring:
    symbol: Optional[str]
    text: str
    line: int
    col: int


def _docstring_of(node: Union[ast.Module, Definition]) -> Optional[Tuple[str, int, int]]:
    text = ast.get_docstring(node, clean=True)
    if text is None:
        return None
    expr = node.body[0]
    return text, expr.lineno, expr.col_offset + 1


def _exported_names(tree: ast.Module) -> Optional[Set[str]]:
    """Names listed in a literal ``__all__``, or None when the module has none."""
    for node in tree.body:
        if not isinstance(node, ast.Assign):
            continue
        if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in node.targets):
            continue
        if isinstance(node.value, (ast.List, ast.Tuple)):
            return {
                elt.value
                for elt in node.value.elts
                if isinstance(elt, ast.Constant) and isinstance(elt.value, str)
            }
    return None


def _is_public(name: str) -> bool:
    return not name.startswith("_") or name == "__init__"


def collect_docstrings(source: str, filename: str = "<module>") -> List[Docstring]:
    try:
        tree = ast.parse(source, filename=filename)
    except SyntaxError as exc:
        raise LinkCheckerError(f"Could not parse {filename}: {exc}") from exc

    found: List[Docstring] = []
    module_doc = _docstring_of(tree)
    if module_doc is not None:
        found.append(Docstring(None, *module_doc))

    exported = _exported_names(tree)
    definitions = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)
    for node in tree.body:
        if not isinstance(node, definitions):
            continue
        if exported is not None and node.name not in exported:
            continue
        if exported is None and node.name.startswith("_"):
            continue
        doc = _docstring_of(node)
        if doc is not None:
            found.append(Docstring(node.name, *doc))
        if isinstance(node, ast.ClassDef):
            for member in node.body:
                if isinstance(member, definitions) and _is_public(member.name):
                    doc = _docstring_of(member)
                    if doc is not None:
                        found.append(Docstring(f"{node.name}.{member.name}", *doc))
    return found


def find_links(
    source: str, filename: str, parser: DocumentParserProtocol
) -> Dict[str, List[DocLinkLocation]]:
    """External links of all public docstrings, each with where it was found."""
    locations: Dict[str, List[DocLinkLocation]] = {}
    for docstring in collect_docstrings(source, filename):
        for href in parser.links_from_text(docstring.text):
            if classify_link(href) != LINK_EXTERNAL:
                continue
            location = DocLinkLocation(filename, docstring.line, docstring.col, docstring.symbol)
            entries = locations.setdefault(href, [])
            if location not in entries:
                entries.append(location)
    return locations


async def load_module_source(module: str, fetcher: Fetcher) -> Tuple[str, str]:
    """Return ``(filename, source)`` for a local path or an http(s) URL."""
    if can_parse_url(module) and classify_link(module) == LINK_EXTERNAL:
        result = await fetcher.fetch(module)
        if result.response is None or not result.response.is_success:
            status = result.response.status_code if result.response is not None else "no response"
            raise LinkCheckerError(f"Could not download {module} ({status})")
        return module, result.response.text
    if not os.path.isfile(module):
        raise LinkCheckerError(f"The specified module must be a Python file: {module}")
    with open(module, "r", encoding="utf-8") as f:
        return module, f.read()


async def find_issues(
    module: str,
    fetcher: Fetcher,
    parser: DocumentParserProtocol,
    github: Optional[GithubClient] = None,
) -> List[DocLinkIssue]:
    filename, source = await load_module_source(module, fetcher)
    link_locations = find_links(source, filename, parser)
    resolver = GroupedLinksResolver(github or GithubClient(fetcher), parser)
    all_anchors: Dict[str, Set[str]] = {}
    issues: List[DocLinkIssue] = []

    for href, locations in link_locations.items():
        root, anchor = parse_link(href)
        if root not in all_anchors:
            grouped = group_links([href])
            if grouped.github_renderable_files:
                resolution = await resolver.resolve(grouped.github_renderable_files[0])
                if resolution.skipped:
                    continue
                issues.extend(DocLinkIssue(issue, list(locations)) for issue in resolution.issues)
                all_anchors[root] = resolution.anchors or set()
            else:
                logger.info("fetch %s", root)
                checked = await check_external_url(root, fetcher, parser)
                issues.extend(DocLinkIssue(issue, list(locations)) for issue in checked.issues)
                all_anchors[root] = checked.anchors or set()

        known = all_anchors[root]
        if anchor is not None and not is_valid_anchor(known, root, anchor):
            issues.append(
                DocLinkIssue(
                    MissingAnchor(reference=href, anchor=anchor, all_anchors=frozenset(known)),
                    list(locations),
                )
            )
    return issues
