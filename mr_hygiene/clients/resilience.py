"""Resilience primitives: exception hierarchy, response classification, retry policy."""

import logging

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


# ── Exception Hierarchy ──────────────────────────────────────────────────────


class APIError(Exception):
    """Base class for all API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientAPIError(APIError):
    """Retriable errors (5xx, connection failures)."""


class FetchFailedError(TransientAPIError):
    """Retries were exhausted on a transient error."""


class PermanentAPIError(APIError):
    """Non-retriable errors (4xx)."""


class AuthError(PermanentAPIError):
    """Authentication/authorisation failure (401)."""


class SchemaChangeError(PermanentAPIError):
    """Remote API response shape changed unexpectedly."""


class ConfigurationError(Exception):
    """A setting required for the requested operation is missing."""


# ── Response Classification ──────────────────────────────────────────────────


def classify_response(response: object) -> None:
    """Raise an appropriate error based on HTTP status code.

    Only server errors are transient.  Every 4xx, including 429, is raised
    as permanent so the caller sees it on the first attempt.

    Args:
        response: An object with a ``status_code`` attribute (e.g. httpx.Response).

    Raises:
        AuthError: On 401.
        PermanentAPIError: On any other 4xx.
        TransientAPIError: On 5xx.
    """
    status = getattr(response, "status_code", None)
    if status is None or 200 <= status < 400:
        return

    if status == 401:
        raise AuthError(f"Authentication failed (HTTP {status})", status)
    if 400 <= status < 500:
        raise PermanentAPIError(f"Client error (HTTP {status})", status)
    raise TransientAPIError(f"Server error (HTTP {status})", status)


def expect_list(data: object, what: str) -> list:
    """Return *data* if it is a list.

    Raises:
        SchemaChangeError: If the payload is any other shape.
    """
    if not isinstance(data, list):
        raise SchemaChangeError(f"Expected list for {what}, got {type(data).__name__}")
    return data


# ── Retry ─────────────────────────────────────────────────────────────────


def log_retry_attempt(retry_state: RetryCallState) -> None:
    """Tenacity ``before_sleep`` callback that logs each retry."""
    attempt = retry_state.attempt_number
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning("Retry attempt %d after error: %s", attempt, exc)


def retrying(
    max_retries: int, backoff_seconds: float, max_backoff_seconds: float
) -> AsyncRetrying:
    """Build the retry controller for one upstream call.

    Retries only ``TransientAPIError``; the wait doubles from
    *backoff_seconds* up to *max_backoff_seconds* and is awaited, so other
    requests keep running.  The last error is re-raised on exhaustion.

    Args:
        max_retries: Retries after the first attempt (0 disables retrying).
        backoff_seconds: Initial wait.
        max_backoff_seconds: Cap for the wait.
    """
    return AsyncRetrying(
        retry=retry_if_exception_type(TransientAPIError),
        stop=stop_after_attempt(max(max_retries, 0) + 1),
        wait=wait_exponential(multiplier=backoff_seconds, max=max_backoff_seconds),
        before_sleep=log_retry_attempt,
        reraise=True,
    )
