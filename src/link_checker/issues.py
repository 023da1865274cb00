"""
Issue model.

Every problem the checker finds is one of the frozen dataclasses below. They
form a closed union (``Issue``): consumers dispatch on the concrete class and
raise on anything unknown, so adding a kind forces the message renderer, the
search-string deriver and the fixer to be updated together.

Issues are hashable and compare structurally, which is what the aggregator
relies on to deduplicate the same problem reported from many documents.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple, Union

from link_checker.constants import FIXABLE_ISSUE_TYPES, WARNING_ISSUE_TYPES
from link_checker.links import replace_link


@dataclass(frozen=True)
class UnknownLinkFormat:
    kind: ClassVar[str] = "unknown_link_format"
    reference: str


@dataclass(frozen=True)
class EmptyDom:
    kind: ClassVar[str] = "empty_dom"
    reference: str


@dataclass(frozen=True)
class EmptyAnchor:
    kind: ClassVar[str] = "empty_anchor"
    reference: str


@dataclass(frozen=True)
class NoResponse:
    kind: ClassVar[str] = "no_response"
    reference: str


@dataclass(frozen=True)
class NotOkResponse:
    kind: ClassVar[str] = "not_ok_response"
    reference: str
    status: int
    status_text: str = ""


@dataclass(frozen=True)
class DisallowExtension:
    kind: ClassVar[str] = "disallow_extension"
    reference: str
    extension: str  # "html" or "md"


@dataclass(frozen=True)
class WrongExtension:
    kind: ClassVar[str] = "wrong_extension"
    reference: str
    actual: str
    expected: str


@dataclass(frozen=True)
class LinkedFileNotFound:
    kind: ClassVar[str] = "linked_file_not_found"
    reference: str
    filepath: str


@dataclass(frozen=True)
class Redirected:
    kind: ClassVar[str] = "redirected"
    from_url: str
    to_url: str


@dataclass(frozen=True)
class MissingAnchor:
    kind: ClassVar[str] = "missing_anchor"
    reference: str
    anchor: str
    all_anchors: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class MissingGithubComment:
    kind: ClassVar[str] = "missing_github_comment"
    reference: str
    anchor: str


@dataclass(frozen=True)
class LocalAltAvailable:
    kind: ClassVar[str] = "local_alt_available"
    reference: str
    reason: str


@dataclass(frozen=True)
class Inaccessible:
    kind: ClassVar[str] = "inaccessible"
    reference: str
    reason: str


Issue = Union[
    UnknownLinkFormat,
    EmptyDom,
    EmptyAnchor,
    NoResponse,
    NotOkResponse,
    DisallowExtension,
    WrongExtension,
    LinkedFileNotFound,
    Redirected,
    MissingAnchor,
    MissingGithubComment,
    LocalAltAvailable,
    Inaccessible,
]

ExternalLinkIssue = Union[
    Redirected,
    NotOkResponse,
    NoResponse,
    MissingAnchor,
    MissingGithubComment,
    EmptyDom,
    LocalAltAvailable,
    Inaccessible,
]

ISSUE_CLASSES: Dict[str, type] = {
    cls.kind: cls
    for cls in (
        UnknownLinkFormat,
        EmptyDom,
        EmptyAnchor,
        NoResponse,
        NotOkResponse,
        DisallowExtension,
        WrongExtension,
        LinkedFileNotFound,
        Redirected,
        MissingAnchor,
        MissingGithubComment,
        LocalAltAvailable,
        Inaccessible,
    )
}

# Serialized names that differ from the attribute names.
_FIELD_ALIASES = {
    "from_url": "from",
    "to_url": "to",
    "status_text": "statusText",
    "all_anchors": "allAnchors",
}
_ALIAS_FIELDS = {v: k for k, v in _FIELD_ALIASES.items()}


def is_fixable(issue: Issue) -> bool:
    return issue.kind in FIXABLE_ISSUE_TYPES


def is_warning(issue: Issue) -> bool:
    return issue.kind in WARNING_ISSUE_TYPES


def get_search_string(issue: Issue) -> str:
    """The text whose occurrences in a source file identify where the issue comes from."""
    if isinstance(issue, Redirected):
        return issue.from_url
    if isinstance(
        issue,
        (
            NotOkResponse,
            NoResponse,
            MissingAnchor,
            MissingGithubComment,
            EmptyDom,
            DisallowExtension,
            WrongExtension,
            LinkedFileNotFound,
            UnknownLinkFormat,
            EmptyAnchor,
            LocalAltAvailable,
            Inaccessible,
        ),
    ):
        return issue.reference
    raise TypeError(f"Unknown issue type: {type(issue).__name__}")


def string_fields(issue: Issue) -> Tuple[str, ...]:
    """Names of the plain string fields that embed link text (used when rewriting)."""
    if isinstance(issue, Redirected):
        return ("from_url", "to_url")
    return ("reference",)


def issue_to_dict(issue: Issue) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": issue.kind}
    for key, value in asdict(issue).items():
        if isinstance(value, (set, frozenset)):
            value = sorted(value)
        out[_FIELD_ALIASES.get(key, key)] = value
    return out


def issue_from_dict(data: Dict[str, Any]) -> Issue:
    kind = data.get("type")
    cls = ISSUE_CLASSES.get(kind) if isinstance(kind, str) else None
    if cls is None:
        raise ValueError(f"Unknown issue type: {kind!r}")
    names = {f.name for f in fields(cls)}
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        if key == "type":
            continue
        name = _ALIAS_FIELDS.get(key, key)
        if name not in names:
            raise ValueError(f"Unexpected field {key!r} for issue type {kind!r}")
        if name == "all_anchors":
            value = frozenset(value)
        kwargs[name] = value
    return cls(**kwargs)


def with_replaced_text(issue: Issue, old: str, new: str) -> Optional[Issue]:
    """Return a copy with ``old`` replaced by ``new`` in its link fields, or None if untouched."""
    changes = {}
    for name in string_fields(issue):
        updated, count = replace_link(getattr(issue, name), old, new)
        if count:
            changes[name] = updated
    if not changes:
        return None
    values = {f.name: getattr(issue, f.name) for f in fields(issue)}
    values.update(changes)
    return type(issue)(**values)
