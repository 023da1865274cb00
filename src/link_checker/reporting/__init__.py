"""Console and Markdown reports of grouped issues."""

from .console import print_module_report, print_report, print_summary
from .details import make_pretty_details
from .markdown import generate_report

__all__ = [
    "print_module_report",
    "print_report",
    "print_summary",
    "make_pretty_details",
    "generate_report",
]
