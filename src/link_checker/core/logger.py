import json
import logging
import os
import re
from datetime import datetime
from typing import Optional

SENSITIVE_PATTERNS = [
    r'(?i)(api[_-]?key|secret|password|token|auth)(["\']?\s*[:=]\s*["\']?)[A-Za-z0-9+/=_-]{16,}',
    r'(?i)(Bearer\s+)[A-Za-z0-9+/=_.-]{20,}',
    r'\b(gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,})\b',
]

def scrub_secrets(text: str) -> str:
    """Replace sensitive values with ***."""
    if not isinstance(text, str):
        text = str(text)
    env_secrets = [v for k, v in os.environ.items()
                   if any(x in k.upper() for x in ['KEY', 'SECRET', 'TOKEN', 'PASSWORD'])
                   and v and len(v) > 8]
    for secret in env_secrets:
        text = text.replace(secret, '***')

    text = re.sub(SENSITIVE_PATTERNS[0], r'\1\2***', text)
    text = re.sub(SENSITIVE_PATTERNS[1], r'\1***', text)
    text = re.sub(SENSITIVE_PATTERNS[2], '***', text)
    return text


class SensitiveDataFilter(logging.Filter):
    """Filter that scrubs sensitive data from log records."""
    def filter(self, record):
        if record.msg and isinstance(record.msg, str):
            record.msg = scrub_secrets(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: (scrub_secrets(v) if isinstance(v, str) else v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(scrub_secrets(arg) if isinstance(arg, str) else arg for arg in record.args)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "meta") and isinstance(record.meta, dict):
            log_entry["meta"] = record.meta
        return scrub_secrets(json.dumps(log_entry, separators=(",", ":")))


def setup_logger(
    name: str = "link_checker",
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    sensitive_filter = SensitiveDataFilter()

    # Console Handler (Human readable)
    ch = logging.StreamHandler()
    ch.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    ch.addFilter(sensitive_filter)
    logger.addHandler(ch)

    # JSON File Handler
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(os.path.join(log_dir, "link_checker.jsonl"))
        fh.setFormatter(JsonFormatter())
        fh.addFilter(sensitive_filter)
        logger.addHandler(fh)

    return logger
