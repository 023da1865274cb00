"""Resolving relative links between documents of the tree."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from link_checker.issues import DisallowExtension, Issue, LinkedFileNotFound, WrongExtension
from link_checker.links import parse_link, safe_unquote


@dataclass
class LocalLinkResult:
    path: str
    anchor: Optional[str] = None
    issues: List[Issue] = field(default_factory=list)


def _root_relative(link: str, root_directory: str, current_directory: str) -> str:
    """Rewrite a ``/``-rooted link relative to the current document directory."""
    target = os.path.normpath(os.path.join(root_directory, link.lstrip("/")))
    relative = os.path.relpath(target, current_directory)
    # normpath drops a trailing slash; it still means "the directory index".
    if link.endswith("/") and not relative.endswith("/"):
        relative += "/"
    return relative


def check_relative_link(
    local_link: str,
    root_directory: str,
    current_directory: str,
    index_file: str = "README.md",
    clean_url: bool = False,
    allow_html_extension: bool = False,
) -> LocalLinkResult:
    """Map a relative link onto a file path and report addressing problems.

    Issues reference ``local_link`` exactly as written in the source so they
    can be located and rewritten there.
    """
    decoded = safe_unquote(local_link)
    if decoded.startswith("/"):
        decoded = _root_relative(decoded, root_directory, current_directory)
    root, anchor = parse_link(decoded)
    issues: List[Issue] = []
    _, ext = os.path.splitext(root)

    if clean_url:
        if ext == ".html":
            issues.append(DisallowExtension(reference=local_link, extension="html"))
            root = root[: -len("html")] + "md"
        elif ext == ".md":
            issues.append(DisallowExtension(reference=local_link, extension="md"))
        elif root.endswith("/"):
            root += index_file
        else:
            root += ".md"
    else:
        if ext == ".html":
            if not allow_html_extension:
                issues.append(WrongExtension(reference=local_link, actual=".html", expected=".md"))
            root = root[: -len("html")] + "md"
        if not root.endswith(".md"):
            if not root.endswith("/"):
                root += "/"
            root += index_file

    path = os.path.normpath(os.path.join(current_directory, root))
    try:
        if "//" in root:
            raise FileNotFoundError(root)
        os.lstat(path)
    except (FileNotFoundError, NotADirectoryError):
        issues.append(LinkedFileNotFound(reference=local_link, filepath=os.path.abspath(path)))
    return LocalLinkResult(path=path, anchor=anchor, issues=issues)
