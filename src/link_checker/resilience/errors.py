"""Error classification for the link checker."""

from typing import Optional


class LinkCheckerError(Exception):
    """Base class for all link checker errors."""


class ConfigurationError(LinkCheckerError):
    """Raised when configuration is invalid."""


class CrawlCancelledError(LinkCheckerError):
    """Raised when a running crawl was cancelled."""


class ProviderError(LinkCheckerError):
    """Base class for errors raised while talking to a remote service."""


class TransientProviderError(ProviderError):
    """Temporary failures: timeouts, connection errors, 408 and 5xx responses."""


class RateLimitProviderError(ProviderError):
    """HTTP 429 or rate limit exceeded."""


class AuthProviderError(ProviderError):
    """Authentication or permission errors."""


class UnknownProviderError(ProviderError):
    """Unexpected or unclassified errors."""


class GithubAPIError(ProviderError):
    """Non-OK response from the GitHub REST API (other than 404)."""

    def __init__(self, message: str, status: int, status_text: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.status_text = status_text or message


def classify_status(status: int) -> type:
    """Map an HTTP status code to the matching provider error class."""
    if status == 429:
        return RateLimitProviderError
    if status in (401, 403):
        return AuthProviderError
    if status == 408 or status >= 500:
        return TransientProviderError
    return UnknownProviderError
