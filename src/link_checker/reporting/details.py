"""One-line (or short) human readable description of an issue."""

from __future__ import annotations

from urllib.parse import unquote

from link_checker.heuristics import DEFAULT_SIMILARITY, get_possible_matches
from link_checker.issues import (
    DisallowExtension,
    EmptyAnchor,
    EmptyDom,
    Inaccessible,
    Issue,
    LinkedFileNotFound,
    LocalAltAvailable,
    MissingAnchor,
    MissingGithubComment,
    NoResponse,
    NotOkResponse,
    Redirected,
    UnknownLinkFormat,
    WrongExtension,
)
from link_checker.links import parse_link


def _anchor_text(anchor):
    return f"#{anchor}" if anchor else ""


def make_pretty_details(issue: Issue, similarity: float = DEFAULT_SIMILARITY) -> str:
    if isinstance(issue, (UnknownLinkFormat, EmptyDom, NoResponse)):
        return unquote(issue.reference)
    if isinstance(issue, NotOkResponse):
        text = f" {issue.status_text}" if issue.status_text else ""
        return f"({issue.status}{text}) {unquote(issue.reference)}"
    if isinstance(issue, WrongExtension):
        root, anchor = parse_link(unquote(issue.reference))
        return (
            f"Expected `{issue.expected}` as the file extension instead of "
            f"`{issue.actual}` in {root}{_anchor_text(anchor)}"
        )
    if isinstance(issue, LinkedFileNotFound):
        return (
            f"The file at `{issue.filepath}` referenced as "
            f"`{unquote(issue.reference)}` was not found"
        )
    if isinstance(issue, Redirected):
        return f"{unquote(issue.from_url)} → {unquote(issue.to_url)}"
    if isinstance(issue, MissingAnchor):
        possible = get_possible_matches(issue.anchor, issue.all_anchors, similarity)
        text = unquote(issue.reference)
        if possible:
            label = "Possible fixes" if len(possible) > 1 else "Possible fix"
            text += f"\n\n{label}: " + ", ".join(f"`{a}`" for a in possible)
        return text
    if isinstance(issue, MissingGithubComment):
        return f"{unquote(issue.reference)} (comment `{issue.anchor}` not found)"
    if isinstance(issue, EmptyAnchor):
        return issue.reference
    if isinstance(issue, DisallowExtension):
        root, anchor = parse_link(unquote(issue.reference))
        return f"Omit the extension `{issue.extension}` from `{root}{_anchor_text(anchor)}`"
    if isinstance(issue, (LocalAltAvailable, Inaccessible)):
        return f"{unquote(issue.reference)}\n\n{issue.reason}"
    raise TypeError(f"Invalid type of issue: {type(issue).__name__}")


def indent_text(text: str, size: int) -> str:
    indent = " " * size
    return "\n".join(indent + line for line in text.split("\n"))
