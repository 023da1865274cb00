"""
On-disk snapshot of the grouped issue map for debugging the fixer.

The snapshot lives in ``<root>/.link-checker`` and is written atomically
(temp file + rename) so an interrupted run never leaves a half-written cache.
"""
from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Optional

from link_checker.aggregate import GroupedIssues, IssueRecord

logger = logging.getLogger("link_checker.cache")

CACHE_VERSION = 1


class IssueCache:
    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[GroupedIssues]:
        """Return the cached issues, or None when there is no usable cache."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if data.get("version") != CACHE_VERSION:
                logger.warning("Ignoring cache %s with version %r", self.path, data.get("version"))
                return None
            grouped = {
                kind: [IssueRecord.from_dict(record) for record in records]
                for kind, records in data["issues"].items()
            }
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to read cache file {self.path}: {e}")
            return None
        logger.info(f"Loaded issues from {self.path}")
        return grouped

    def save(self, grouped: GroupedIssues) -> None:
        """Atomic save via temp file + rename."""
        payload = {
            "version": CACHE_VERSION,
            "saved_at": time.time(),
            "issues": {
                kind: [record.to_dict() for record in records] for kind, records in grouped.items()
            },
        }
        temp = self.path.with_name(self.path.name + ".tmp")
        with open(temp, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        temp.replace(self.path)
        logger.info(f"Cache file written to {self.path}")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
