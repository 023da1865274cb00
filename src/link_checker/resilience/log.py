"""Structured events of the fetch layer: retries, abandoned requests, API errors."""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict

logger = logging.getLogger("link_checker.resilience")

JSONL_ENV = "LINK_CHECKER_LOG_JSONL"
WARNING_EVENTS = {"retries_exhausted", "request_failed", "provider_error"}


def log_event(event_type: str, data: Dict[str, Any], context: str = "fetch") -> None:
    """Log one event; the full entry rides along as ``meta`` for the JSON formatter."""
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "type": event_type,
        "context": context,
        **data,
    }
    level = logging.WARNING if event_type in WARNING_EVENTS else logging.INFO
    logger.log(
        level,
        "[%s] %s: %s",
        context,
        event_type,
        json.dumps(data, separators=(",", ":")),
        extra={"meta": entry},
    )

    log_path = os.environ.get(JSONL_ENV)
    if log_path:
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")


def log_provider_error(provider: str, operation: str, error_type: str, details: str) -> None:
    log_event(
        "provider_error",
        {"provider": provider, "operation": operation, "error_type": error_type, "details": details},
        context=provider,
    )
