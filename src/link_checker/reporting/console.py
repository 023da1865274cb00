from __future__ import annotations

import os
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from link_checker.aggregate import GroupedIssues, IssueRecord
from link_checker.constants import ISSUE_DESCRIPTIONS, ISSUE_TITLES, SEARCH_PANIC_MESSAGE
from link_checker.issues import is_warning
from link_checker.pydoc_links import DocLinkIssue
from link_checker.reporting.details import indent_text, make_pretty_details

console = Console()


def _relative(filepath: str, base: Optional[str]) -> str:
    if base is None:
        return filepath
    try:
        return os.path.relpath(filepath, base)
    except ValueError:
        return filepath


def format_locations(record: IssueRecord, base: Optional[str] = None) -> List[str]:
    lines: List[str] = []
    for entry in record.stack:
        path = _relative(entry.filepath, base)
        if not entry.locations:
            lines.append(f"{escape(path)} [red](search string not found)[/red]")
        for location in entry.locations:
            for column in location.columns:
                lines.append(f"{escape(path)}:{location.line}:{column}")
    return lines


def print_summary(grouped: GroupedIssues, out: Console = console) -> None:
    table = Table(title="Link Check Summary")
    table.add_column("Issue", style="cyan")
    table.add_column("Count", justify="right", style="magenta")
    total = 0
    for kind, records in grouped.items():
        style = "yellow" if records and is_warning(records[0].details) else "red"
        table.add_row(ISSUE_TITLES[kind], f"[{style}]{len(records)}[/{style}]")
        total += len(records)
    table.add_row("[bold]Total[/bold]", f"[bold]{total}[/bold]")
    out.print(table)


def print_report(
    grouped: GroupedIssues,
    base: Optional[str] = None,
    similarity: float = 0.9,
    out: Console = console,
) -> None:
    """Per kind: title, description, every distinct issue and where it occurs."""
    for kind, records in grouped.items():
        out.print(f"\n[bold red]{ISSUE_TITLES[kind]} ({len(records)})[/bold red]")
        out.print(f"[dim]{escape(ISSUE_DESCRIPTIONS[kind])}[/dim]")
        rendered = sorted(
            ((make_pretty_details(r.details, similarity), r) for r in records),
            key=lambda pair: pair[0],
        )
        for details, record in rendered:
            first, *rest = details.split("\n")
            out.print(f"\n [grey50]-->[/grey50] {escape(first)}")
            if rest:
                out.print(escape(indent_text("\n".join(rest).strip("\n"), 5)))
            for line in format_locations(record, base):
                out.print(f"     [blue]{line}[/blue]")
        if any(not r.stack or any(not e.locations for e in r.stack) for r in records):
            out.print(f"[bold yellow]{escape(SEARCH_PANIC_MESSAGE)}[/bold yellow]")
    print_summary(grouped, out)


def print_module_report(issues: List[DocLinkIssue], out: Console = console) -> None:
    by_location = {}
    for item in issues:
        key = "\n".join(loc.pretty() for loc in item.locations)
        by_location.setdefault(key, []).append(item)
    for key in sorted(by_location):
        out.print(f"\n [bold]{escape(key)}[/bold]\n")
        for item in by_location[key]:
            details = make_pretty_details(item.issue)
            out.print("  - " + escape(indent_text(details, 4)[4:]))
