"""Deduplicating issues across documents and locating them in the sources."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from link_checker.constants import ISSUE_TYPES, SEARCH_PANIC_MESSAGE
from link_checker.issues import Issue, get_search_string, issue_from_dict, issue_to_dict

logger = logging.getLogger("link_checker.aggregate")


@dataclass
class Location:
    line: int
    columns: List[int]


@dataclass
class StackEntry:
    filepath: str
    locations: List[Location] = field(default_factory=list)


@dataclass
class IssueRecord:
    """One distinct issue and every place its search string occurs."""

    details: Issue
    stack: List[StackEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "details": issue_to_dict(self.details),
            "stack": [
                {
                    "filepath": entry.filepath,
                    "locations": [
                        {"line": loc.line, "columns": list(loc.columns)} for loc in entry.locations
                    ],
                }
                for entry in self.stack
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IssueRecord":
        return cls(
            details=issue_from_dict(data["details"]),
            stack=[
                StackEntry(
                    filepath=entry["filepath"],
                    locations=[
                        Location(line=loc["line"], columns=list(loc["columns"]))
                        for loc in entry.get("locations", [])
                    ],
                )
                for entry in data.get("stack", [])
            ],
        )


GroupedIssues = Dict[str, List[IssueRecord]]


def find_columns(line: str, needle: str) -> List[int]:
    """1-based columns of every occurrence of ``needle`` in ``line``."""
    columns: List[int] = []
    start = line.find(needle)
    while start != -1:
        columns.append(start + 1)
        start = line.find(needle, start + 1)
    return columns


def find_string_locations(filepath: str, search_string: str) -> List[Location]:
    """Literal (not regex) search for ``search_string`` line by line."""
    if not search_string:
        return []
    with open(filepath, "r", encoding="utf-8") as f:
        content = f.read()
    locations: List[Location] = []
    for number, line in enumerate(content.split("\n"), start=1):
        if search_string in line:
            locations.append(Location(line=number, columns=find_columns(line, search_string)))
    return locations


def dedupe_issues(issues: Dict[str, List[Issue]]) -> Dict[Issue, List[str]]:
    """Structurally equal issues collapse into one entry listing their documents."""
    deduped: Dict[Issue, List[str]] = {}
    for filepath, file_issues in issues.items():
        for issue in file_issues:
            files = deduped.setdefault(issue, [])
            if filepath not in files:
                files.append(filepath)
    return deduped


def process_issues(issues: Dict[str, List[Issue]]) -> GroupedIssues:
    """Group issues by kind with a located stack per distinct issue."""
    grouped: GroupedIssues = {}
    for details, filepaths in dedupe_issues(issues).items():
        search_string = get_search_string(details)
        stack: List[StackEntry] = []
        for filepath in sorted(filepaths):
            locations = find_string_locations(filepath, search_string)
            if not locations:
                logger.error(
                    "Search string %r not found in %s for %r\n%s",
                    search_string,
                    filepath,
                    details,
                    SEARCH_PANIC_MESSAGE,
                )
            stack.append(StackEntry(filepath=filepath, locations=locations))
        grouped.setdefault(details.kind, []).append(IssueRecord(details=details, stack=stack))
    return {kind: grouped[kind] for kind in ISSUE_TYPES if kind in grouped}


def count_issues(grouped: GroupedIssues) -> int:
    return sum(len(records) for records in grouped.values())
