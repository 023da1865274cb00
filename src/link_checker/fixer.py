"""
Best-effort automatic repair of fixable issues.

Each fixable issue turns into an ``(old, new)`` string pair whose whole-link
occurrences are replaced in every file of its stack. Fixes are heuristic (a fuzzy anchor
match may be wrong) and need a human review before committing.

Rounds repeat until one makes no change. A file leaves a record's stack only
when it was actually rewritten, so stacks only shrink and the loop ends.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from link_checker.aggregate import GroupedIssues, IssueRecord
from link_checker.constants import FIXABLE_ISSUE_TYPES
from link_checker.heuristics import DEFAULT_SIMILARITY, get_possible_matches
from link_checker.issues import (
    DisallowExtension,
    EmptyAnchor,
    Issue,
    MissingAnchor,
    Redirected,
    WrongExtension,
    with_replaced_text,
)
from link_checker.links import parse_link, replace_link

logger = logging.getLogger("link_checker.fixer")


def _replace_root_suffix(reference: str, suffix: str, replacement: str) -> Optional[str]:
    root, _ = parse_link(reference)
    if not root.endswith(suffix):
        return None
    return root[: len(root) - len(suffix)] + replacement + reference[len(root):]


def get_rewrite(issue: Issue, similarity: float = DEFAULT_SIMILARITY) -> Optional[Tuple[str, str]]:
    """``(old, new)`` for a fixable issue, or None if it cannot be fixed."""
    if isinstance(issue, Redirected):
        return issue.from_url, issue.to_url
    if isinstance(issue, MissingAnchor):
        matches = get_possible_matches(issue.anchor, issue.all_anchors, similarity)
        if not matches:
            return None
        root, _ = parse_link(issue.reference)
        return issue.reference, f"{root}#{matches[0]}"
    if isinstance(issue, EmptyAnchor):
        if not issue.reference.endswith("#"):
            return None
        return issue.reference, issue.reference[:-1]
    if isinstance(issue, WrongExtension):
        new = _replace_root_suffix(issue.reference, issue.actual, issue.expected)
        return (issue.reference, new) if new is not None else None
    if isinstance(issue, DisallowExtension):
        new = _replace_root_suffix(issue.reference, "." + issue.extension, "")
        return (issue.reference, new) if new is not None else None
    return None


class Fixer:
    def __init__(
        self,
        root_directory: Optional[str] = None,
        ref_directory: str = "ref",
        similarity: float = DEFAULT_SIMILARITY,
    ) -> None:
        self.root_directory = Path(root_directory).resolve() if root_directory else None
        self.ref_directory = ref_directory
        self.similarity = similarity
        self.total_fixes = 0

    def is_protected(self, filepath: str) -> bool:
        """Generated reference docs are never rewritten."""
        path = Path(filepath).resolve()
        if self.root_directory is not None:
            try:
                path = path.relative_to(self.root_directory)
            except ValueError:
                pass
        return self.ref_directory in path.parts[:-1]

    def _rewrite_file(self, filepath: str, old: str, new: str) -> bool:
        path = Path(filepath)
        content = path.read_text(encoding="utf-8")
        updated, count = replace_link(content, old, new)
        if count == 0 or updated == content:
            return False
        path.write_text(updated, encoding="utf-8")
        return True

    def _propagate(
        self, grouped: GroupedIssues, fixed: IssueRecord, old: str, new: str, rewritten: Set[str]
    ) -> None:
        for kind in FIXABLE_ISSUE_TYPES:
            for record in grouped.get(kind, []):
                if record is fixed or not record.stack:
                    continue
                if not all(entry.filepath in rewritten for entry in record.stack):
                    continue
                updated = with_replaced_text(record.details, old, new)
                if updated is not None:
                    record.details = updated

    def fix_round(self, grouped: GroupedIssues) -> Tuple[GroupedIssues, int]:
        fixes = 0
        rewritten: Set[str] = set()
        for kind in FIXABLE_ISSUE_TYPES:
            for record in list(grouped.get(kind, [])):
                rewrite = get_rewrite(record.details, self.similarity)
                if rewrite is None or rewrite[0] == rewrite[1]:
                    continue
                old, new = rewrite
                remaining = []
                changed = False
                for entry in record.stack:
                    if self.is_protected(entry.filepath) or not self._rewrite_file(
                        entry.filepath, old, new
                    ):
                        remaining.append(entry)
                        continue
                    logger.info("fixed %s: %s -> %s", entry.filepath, old, new)
                    rewritten.add(entry.filepath)
                    fixes += 1
                    changed = True
                record.stack = remaining
                if changed:
                    self._propagate(grouped, record, old, new, rewritten)

        rebuilt: Dict[str, List[IssueRecord]] = {}
        for kind, records in grouped.items():
            kept = [r for r in records if r.stack]
            if kept:
                rebuilt[kind] = kept
        return rebuilt, fixes

    def fix(self, grouped: GroupedIssues) -> GroupedIssues:
        """Apply rounds until nothing changes and return the issues left over."""
        round_number = 0
        while True:
            round_number += 1
            grouped, fixes = self.fix_round(grouped)
            self.total_fixes += fixes
            logger.info("fix round %d: %d rewrites", round_number, fixes)
            if fixes == 0:
                return grouped


def fix_issues(
    grouped: GroupedIssues,
    root_directory: Optional[str] = None,
    ref_directory: str = "ref",
    similarity: float = DEFAULT_SIMILARITY,
) -> Tuple[GroupedIssues, int]:
    fixer = Fixer(root_directory, ref_directory, similarity)
    remaining = fixer.fix(grouped)
    return remaining, fixer.total_fixes
