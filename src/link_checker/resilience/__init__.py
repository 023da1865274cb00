"""Resilience patterns for remote calls."""

from .errors import (
    LinkCheckerError,
    ConfigurationError,
    CrawlCancelledError,
    ProviderError,
    TransientProviderError,
    RateLimitProviderError,
    AuthProviderError,
    UnknownProviderError,
    GithubAPIError,
    classify_status,
)
from .retry import RetryPolicy, build_async_retrying, is_retryable_response
from .log import log_event, log_provider_error

__all__ = [
    "LinkCheckerError",
    "ConfigurationError",
    "CrawlCancelledError",
    "ProviderError",
    "TransientProviderError",
    "RateLimitProviderError",
    "AuthProviderError",
    "UnknownProviderError",
    "GithubAPIError",
    "classify_status",
    "RetryPolicy",
    "build_async_retrying",
    "is_retryable_response",
    "log_event",
    "log_provider_error",
]
