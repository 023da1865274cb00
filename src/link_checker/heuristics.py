"""
Heuristics deciding when a redirect or a missing anchor is not worth reporting.
"""
from __future__ import annotations

from difflib import SequenceMatcher
from typing import Iterable, List, Set
from urllib.parse import SplitResult, parse_qs, parse_qsl, urlsplit

from link_checker.constants import VALID_REDIRECTIONS
from link_checker.links import can_parse_url, normalize_url, safe_unquote

DEFAULT_SIMILARITY = 0.9
# Lazily hydrated docs number repeated headings as "<id>_1", "<id>_2", ...
LAZY_ANCHOR_SUFFIXES = range(1, 4)
LAZY_ANCHOR_SITES = [("firebase.google.com", "/docs")]


def _split(url: str) -> SplitResult:
    return urlsplit(normalize_url(url))


def _href(parts: SplitResult) -> str:
    return parts.geturl()


def _same_except_query(a: SplitResult, b: SplitResult) -> bool:
    return a.netloc == b.netloc and a.path == b.path


def _general(frm: SplitResult, to: SplitResult) -> bool:
    from_segments = frm.path.split("/")
    to_segments = to.path.split("/")

    if _href(frm) == _href(to):
        return True

    # Unpinned third-party module redirected to its latest pinned version.
    if frm.hostname == "deno.land" and to.hostname == "deno.land":
        if (
            frm.path.startswith("/x/")
            and len(from_segments) > 2
            and "@" not in from_segments[2]
            and to.path.startswith("/x/")
            and len(to_segments) > 2
            and "@" in to_segments[2]
        ):
            return True
        if frm.path.startswith("/std/") and to.path.startswith("/std@"):
            return True

    # Versionless manual link redirected to the current manual version.
    if (
        frm.hostname == "deno.com"
        and frm.path.startswith("/manual/")
        and to.hostname == "deno.com"
        and to.path.startswith("/manual@")
    ):
        return True

    # youtu.be/<id> expands to www.youtube.com/watch?v=<id>.
    if (
        frm.hostname == "youtu.be"
        and to.hostname == "www.youtube.com"
        and to.path == "/watch"
        and parse_qs(to.query).get("v", [None])[0] == frm.path[1:]
    ):
        return True

    # Only a trailing slash was added or removed.
    if frm.netloc == to.netloc and (
        to.path + "/" == frm.path or frm.path + "/" == to.path
    ):
        return True

    # Query parameters were added or removed (language codes and the like).
    if _same_except_query(frm, to) and len(parse_qsl(frm.query, keep_blank_values=True)) != len(
        parse_qsl(to.query, keep_blank_values=True)
    ):
        return True

    # Login walls.
    if to.hostname == "accounts.google.com" and len(to_segments) > 2 and to_segments[2] == "signin":
        return True
    if to.hostname == "github.com" and to.path.startswith("/login"):
        return True

    return False


def is_valid_redirection(from_url: str, to_url: str) -> bool:
    """True when ``to_url`` is an acceptable evolution of ``from_url``."""
    if VALID_REDIRECTIONS.get(from_url) == to_url:
        return True
    if from_url == to_url:
        return True

    frm = _split(from_url)
    to = _split(to_url)
    if VALID_REDIRECTIONS.get(_href(frm)) == _href(to):
        return True
    if _general(frm, to):
        return True

    # Same checks with "www." added to the source host.
    if "www." + frm.netloc == to.netloc:
        if _general(_split(_href(frm).replace("://", "://www.", 1)), to):
            return True

    # Same checks with the source scheme upgraded to https.
    if frm.scheme == "http" and to.scheme == "https":
        if _general(_split(_href(frm).replace("http", "https", 1)), to):
            return True

    return False


def is_valid_anchor(all_anchors: Set[str], url: str, anchor: str) -> bool:
    decoded = safe_unquote(anchor)
    if anchor in all_anchors or decoded in all_anchors:
        return True
    if not can_parse_url(url):
        # Local files are fully rendered, membership is all there is.
        return False

    parts = urlsplit(url)
    for hostname, prefix in LAZY_ANCHOR_SITES:
        if parts.hostname == hostname and parts.path.startswith(prefix):
            return any(
                f"{anchor}_{i}" in all_anchors or f"{decoded}_{i}" in all_anchors
                for i in LAZY_ANCHOR_SUFFIXES
            )
    return False


def similarity(a: str, b: str) -> float:
    return SequenceMatcher(None, a.lower(), b.lower()).ratio()


def get_possible_matches(
    anchor: str, all_anchors: Iterable[str], threshold: float = DEFAULT_SIMILARITY
) -> List[str]:
    """Anchors that look like ``anchor``, best match first."""
    scored = [(similarity(anchor, candidate), candidate) for candidate in all_anchors]
    return [c for score, c in sorted(scored, key=lambda x: (-x[0], x[1])) if score >= threshold]
