"""Document parsing."""

from .markdown import MarkdownParser, ParsedDocument, get_anchors, get_links, slugify

__all__ = ["MarkdownParser", "ParsedDocument", "get_anchors", "get_links", "slugify"]
