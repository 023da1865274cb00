"""Link splitting and classification."""

from __future__ import annotations

import re
from typing import NamedTuple, Optional, Tuple
from urllib.parse import unquote, urlsplit, urlunsplit

LINK_EXTERNAL = "external"
LINK_LOCAL = "local"
LINK_ANCHOR = "anchor"
LINK_IGNORED = "ignored"
LINK_UNKNOWN = "unknown"

_HTTP_RE = re.compile(r"^https?:", re.IGNORECASE)
_IGNORED_SCHEMES = ("mailto:",)


class ParsedLink(NamedTuple):
    root: str
    anchor: Optional[str] = None


def can_parse_url(href: str) -> bool:
    """True if ``href`` is an absolute URL (has a scheme, and a host for http(s))."""
    try:
        parts = urlsplit(href)
    except ValueError:
        return False
    if not parts.scheme or len(parts.scheme) < 2:
        # Single-letter "schemes" are Windows drive letters.
        return False
    if parts.scheme.lower() in ("http", "https"):
        return bool(parts.netloc)
    return True


def safe_unquote(value: str) -> str:
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def parse_link(href: str) -> ParsedLink:
    """Split a link into its root and its percent-decoded anchor.

    Relative links are split on the last ``#`` so that an encoded path can
    itself contain one. Absolute URLs follow URL rules: the fragment starts at
    the first ``#``, after any query.
    """
    if not can_parse_url(href):
        pos = href.rfind("#")
        if pos == -1:
            return ParsedLink(href)
        return ParsedLink(href[:pos], safe_unquote(href[pos + 1:]))
    pos = href.find("#")
    if pos == -1:
        return ParsedLink(href)
    return ParsedLink(href[:pos], safe_unquote(href[pos + 1:]))


def classify_link(href: str) -> str:
    if href.lower().startswith(_IGNORED_SCHEMES):
        return LINK_IGNORED
    if _HTTP_RE.match(href) and can_parse_url(href):
        return LINK_EXTERNAL
    if href.startswith(".") or href.startswith("/"):
        return LINK_LOCAL
    if href.startswith("#"):
        return LINK_ANCHOR
    return LINK_UNKNOWN


def transform_url(link: str) -> str:
    """Rewrite hosts that are commonly blocked by ISPs to an equivalent mirror."""
    parts = urlsplit(link)
    if parts.hostname == "t.me":
        netloc = parts.netloc.replace("t.me", "telegram.me", 1)
        return urlunsplit(parts._replace(netloc=netloc))
    return link


def normalize_url(link: str) -> str:
    """Lower-case the scheme and host and give an empty path its ``/``."""
    parts = urlsplit(link)
    path = parts.path or ("/" if parts.netloc else "")
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), path, parts.query, parts.fragment)
    )


# Characters that would make a match part of a longer URL on either side:
# "#usage" inside "./b.md#usage", "./b.md#" inside "./b.md#usage".
_URL_PRECEDING = r"(?<![\w\-.~%/?=&+:#])"
_URL_CONTINUATION = r"(?![\w\-.~%/?=&+])"


def replace_link(content: str, old: str, new: str) -> Tuple[str, int]:
    """Replace whole occurrences of the link text ``old``; returns the text and the count."""
    pattern = re.compile(_URL_PRECEDING + re.escape(old) + _URL_CONTINUATION)
    return pattern.subn(lambda _: new, content)
