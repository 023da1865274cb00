"""Markdown report, suitable as the body of a tracking issue."""

from __future__ import annotations

import os
from typing import List, Optional

from link_checker.aggregate import GroupedIssues, StackEntry
from link_checker.constants import ISSUE_DESCRIPTIONS, ISSUE_TITLES
from link_checker.reporting.details import indent_text, make_pretty_details

INTRO = (
    "This issue contains the details regarding broken links in the documentation. "
    "Please review the report below and close this issue once the fixes are made."
)


def _stack_trace(stack: List[StackEntry], base: Optional[str], source_url: Optional[str]) -> str:
    lines = []
    for entry in stack:
        path = os.path.relpath(entry.filepath, base) if base else entry.filepath
        for location in entry.locations:
            for column in location.columns:
                line = f"- <samp>**{path}**:{location.line}:{column}"
                if source_url:
                    line += f" [[src]({source_url.rstrip('/')}/{path}?plain=1#L{location.line}C{column})]"
                lines.append(line + "</samp>")
    return "\n".join(lines)


def generate_report(
    grouped: GroupedIssues,
    base: Optional[str] = None,
    source_url: Optional[str] = None,
    similarity: float = 0.9,
) -> str:
    """Render the grouped issues as Markdown.

    ``source_url`` is a URL prefix (for example a blob URL at a commit) that
    turns every location into a link to the source line.
    """
    report = INTRO + "\n\n"
    total = 0
    for kind, records in grouped.items():
        report += f"### {ISSUE_TITLES[kind]} ({len(records)})\n\n"
        report += " ".join(ISSUE_DESCRIPTIONS[kind].split("\n"))
        report += "\n\n<details><summary>Show the issues</summary>"
        rendered = sorted(
            (
                make_pretty_details(record.details, similarity),
                _stack_trace(record.stack, base, source_url),
            )
            for record in records
        )
        for details, stack_trace in rendered:
            report += "\n\n- [ ] " + indent_text(details, 5)[5:]
            report += "\n\n" + indent_text(stack_trace, 5)
        report += "\n</details>\n\n"
        total += len(records)
    return f"\n**Found {total} issues across the documentation**\n\n" + report
