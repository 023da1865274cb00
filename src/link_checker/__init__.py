"""Documentation link and anchor checker."""

__version__ = "0.4.0"
