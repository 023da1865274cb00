"""Retry policy for outgoing HTTP requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
import tenacity

from .log import log_event

RETRYABLE_STATUS = 408


@dataclass
class RetryPolicy:
    """Bounded, fixed-delay retries.

    Network-level exceptions and responses with status 408 or >= 500 are
    retried. Other non-OK responses are returned as they are.
    """

    max_attempts: int = 5
    delay: float = 3.0


def is_retryable_response(response: Optional[httpx.Response]) -> bool:
    if response is None:
        return False
    return response.status_code == RETRYABLE_STATUS or response.status_code >= 500


def _log_retry(retry_state: tenacity.RetryCallState) -> None:
    outcome = retry_state.outcome
    url = retry_state.args[0] if retry_state.args else retry_state.kwargs.get("url")
    if outcome is not None and outcome.failed:
        reason = repr(outcome.exception())
    else:
        reason = f"status {outcome.result().status_code}" if outcome else "unknown"
    log_event(
        "retry",
        {"url": str(url), "attempt": retry_state.attempt_number, "reason": reason},
    )


def _give_up(retry_state: tenacity.RetryCallState) -> Optional[httpx.Response]:
    """Return the last response if there was one, None when every attempt raised."""
    outcome = retry_state.outcome
    url = retry_state.args[0] if retry_state.args else retry_state.kwargs.get("url")
    if outcome is None or outcome.failed:
        log_event(
            "retries_exhausted",
            {
                "url": str(url),
                "attempts": retry_state.attempt_number,
                "error": repr(outcome.exception()) if outcome else None,
            },
        )
        return None
    return outcome.result()


def build_async_retrying(policy: RetryPolicy) -> tenacity.AsyncRetrying:
    """Build a tenacity controller for an async callable returning a response."""
    return tenacity.AsyncRetrying(
        stop=tenacity.stop_after_attempt(policy.max_attempts),
        wait=tenacity.wait_fixed(policy.delay),
        retry=(
            tenacity.retry_if_exception_type(httpx.TransportError)
            | tenacity.retry_if_result(is_retryable_response)
        ),
        before_sleep=_log_retry,
        retry_error_callback=_give_up,
    )
