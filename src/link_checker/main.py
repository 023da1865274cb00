import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from link_checker import __version__
from link_checker.aggregate import GroupedIssues, count_issues, process_issues
from link_checker.cache import IssueCache
from link_checker.core.config import CheckerConfig, load_checker_config
from link_checker.core.logger import setup_logger
from link_checker.fetch import Fetcher
from link_checker.fixer import fix_issues
from link_checker.github import GithubClient
from link_checker.issues import is_warning
from link_checker.parsing import MarkdownParser
from link_checker.pydoc_links import find_issues as find_module_issues
from link_checker.reporting import generate_report, print_module_report, print_report
from link_checker.resilience import (
    ConfigurationError,
    CrawlCancelledError,
    LinkCheckerError,
    RetryPolicy,
)
from link_checker.session import CrawlSession

app = typer.Typer(help="Broken link checker for Markdown documentation", add_completion=False)
console = Console()
logger = logging.getLogger("link_checker.main")

EXIT_OK = 0
EXIT_ISSUES = 1
EXIT_CONFIG = 2
EXIT_CANCELLED = 130


def handle_exception(exc_type, exc_value, exc_traceback):
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logging.getLogger("link_checker").critical(
        "Unhandled exception", exc_info=(exc_type, exc_value, exc_traceback)
    )


sys.excepthook = handle_exception


def _load_config(config_path: Optional[Path], overrides: Dict[str, Any]) -> CheckerConfig:
    try:
        return load_checker_config(config_path, overrides)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_CONFIG)


def _make_fetcher(config: CheckerConfig) -> Fetcher:
    return Fetcher(
        policy=RetryPolicy(max_attempts=config.max_retries, delay=config.retry_delay),
        timeout=config.timeout,
    )


def _install_cancel_handler(session: CrawlSession) -> None:
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, session.cancel)
    except (NotImplementedError, RuntimeError):
        # Signal handlers are not available on every platform/event loop.
        pass


async def check_website(root: Path, config: CheckerConfig) -> GroupedIssues:
    """Crawl (or load from the debug cache), then optionally fix."""
    cache = IssueCache(root / config.cache_file)
    grouped: Optional[GroupedIssues] = cache.load() if config.debug else None

    if grouped is None:
        if not config.github_token:
            logger.info(
                "Gentle reminder: set GITHUB_TOKEN if the documents link to GitHub repository files."
            )
        async with _make_fetcher(config) as fetcher:
            github = GithubClient(fetcher, config.github_token, config.github_api_root)
            session = CrawlSession(
                str(root),
                config,
                fetcher=fetcher,
                parser=MarkdownParser(),
                github=github,
                comments_client=github if config.github_token else None,
            )
            _install_cancel_handler(session)
            issues = await session.run()
        grouped = process_issues(issues)
        logger.info("Found %d distinct issues", count_issues(grouped))
        if config.debug:
            cache.save(grouped)

    if config.fix:
        grouped, fixes = fix_issues(
            grouped, str(root), config.ref_directory, config.anchor_similarity
        )
        console.print(f"[green]Applied {fixes} fixes. Review the changes before committing.[/green]")
    return grouped


def _has_errors(grouped: GroupedIssues) -> bool:
    return any(not is_warning(record.details) for records in grouped.values() for record in records)


@app.command()
def website(
    root: Path = typer.Argument(Path("."), help="Root directory of the Markdown documents"),
    clean_url: Optional[bool] = typer.Option(None, "--clean-url", help="Links omit file extensions"),
    index_file: Optional[str] = typer.Option(None, help="File a directory link resolves to"),
    allow_html_extension: Optional[bool] = typer.Option(
        None, "--allow-html-extension", help="Tolerate .html in local links"
    ),
    include_ref: Optional[bool] = typer.Option(
        None, "--include-ref", help="Also check links in the generated reference directory"
    ),
    ignore_warnings: Optional[bool] = typer.Option(
        None, "--ignore-warnings", help="Hide warning-class issues"
    ),
    fix: Optional[bool] = typer.Option(None, "--fix", help="Try to fix fixable issues in place"),
    debug: Optional[bool] = typer.Option(
        None, "--debug", help="Read/write the issue cache instead of crawling every time"
    ),
    report: Optional[Path] = typer.Option(None, help="Write a Markdown report to this file"),
    source_url: Optional[str] = typer.Option(
        None, help="URL prefix used to link locations in the Markdown report"
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    log_dir: Optional[Path] = typer.Option(None, help="Also write JSON logs here"),
):
    """Check every Markdown document under ROOT."""
    load_dotenv()
    setup_logger(level=logging.DEBUG if verbose else logging.INFO, log_dir=log_dir)
    settings = _load_config(
        config,
        {
            "clean_url": clean_url,
            "index_file": index_file,
            "allow_html_extension": allow_html_extension,
            "include_ref_directory": include_ref,
            "ignore_warnings": ignore_warnings,
            "fix": fix,
            "debug": debug,
        },
    )
    if not root.is_dir():
        console.print(f"[red]Not a directory: {root}[/red]")
        raise typer.Exit(EXIT_CONFIG)

    try:
        grouped = asyncio.run(check_website(root, settings))
    except (CrawlCancelledError, KeyboardInterrupt):
        console.print("[yellow]Cancelled.[/yellow]")
        raise typer.Exit(EXIT_CANCELLED)

    shown = grouped
    if settings.ignore_warnings:
        shown = {
            kind: records
            for kind, records in grouped.items()
            if not any(is_warning(r.details) for r in records)
        }

    if not shown:
        console.print("[green]Found no issues.[/green]")
    else:
        print_report(shown, base=str(root.resolve()), similarity=settings.anchor_similarity)

    if report is not None:
        report.write_text(
            generate_report(shown, str(root.resolve()), source_url, settings.anchor_similarity),
            encoding="utf-8",
        )
        console.print(f"Report written to {report}")

    raise typer.Exit(EXIT_ISSUES if _has_errors(grouped) else EXIT_OK)


@app.command()
def module(
    module: str = typer.Argument(..., help="Python source file or http(s) URL to one"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Check the links in the docstrings of a Python module."""
    load_dotenv()
    setup_logger(level=logging.DEBUG if verbose else logging.INFO)
    settings = _load_config(config, {})

    async def _run():
        async with _make_fetcher(settings) as fetcher:
            github = GithubClient(fetcher, settings.github_token, settings.github_api_root)
            return await find_module_issues(module, fetcher, MarkdownParser(), github)

    console.print("Fetching module and checking for bad links...")
    try:
        issues = asyncio.run(_run())
    except KeyboardInterrupt:
        raise typer.Exit(EXIT_CANCELLED)
    except LinkCheckerError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_CONFIG)

    if not issues:
        console.print("[green]No broken links were found in any of the docstrings![/green]")
        raise typer.Exit(EXIT_OK)
    console.print(f"\n[red]Found {len(issues)} issues in docstrings of the module.[/red]")
    print_module_report(issues, out=console)
    raise typer.Exit(EXIT_ISSUES)


@app.command()
def doctor(
    root: Path = typer.Argument(Path("."), help="Root directory of the Markdown documents"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
):
    """Verify environment readiness."""
    load_dotenv()
    console.print(f"[bold blue]Link Checker Doctor[/bold blue] v{__version__}\n")

    config_status = "not given"
    if config is not None:
        try:
            load_checker_config(config)
            config_status = "valid"
        except ConfigurationError:
            config_status = "INVALID"
    token = os.environ.get("GITHUB_TOKEN") or os.environ.get("LINK_CHECKER_GITHUB_TOKEN")

    checks = [
        ("Python Version", sys.version.split()[0], ">=3.9"),
        ("Root Directory", str(root), "exists" if root.is_dir() else "MISSING"),
        ("GitHub Token", "set" if token else "not set", "recommended"),
        ("Config File", str(config) if config else "-", config_status),
    ]

    table = Table(show_header=True, header_style="bold")
    table.add_column("Check")
    table.add_column("Value")
    table.add_column("Status")
    table.add_column("Result")

    failed = False
    for label, value, status in checks:
        if status in ("MISSING", "INVALID"):
            result = "[red]FAIL[/red]"
            failed = True
        elif status == "recommended" and value == "not set":
            result = "[yellow]WARN[/yellow]"
        else:
            result = "[green]PASS[/green]"
        table.add_row(label, value, status, result)

    console.print(table)
    raise typer.Exit(EXIT_CONFIG if failed else EXIT_OK)


if __name__ == "__main__":
    app()
