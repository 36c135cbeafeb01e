"""User-facing error messages and the safe tool wrapper."""

import logging

from mr_hygiene.clients.resilience import (
    AuthError,
    ConfigurationError,
    FetchFailedError,
    PermanentAPIError,
    SchemaChangeError,
    TransientAPIError,
)

logger = logging.getLogger(__name__)


def get_user_message(error: Exception, context: dict | None = None) -> str:
    """Map an exception to a message fit for the dashboard user.

    Args:
        error: The exception to translate.
        context: Optional dict with extra info, e.g. {"service": "Jira"}.

    Returns:
        A human-readable error message.
    """
    service = (context or {}).get("service", "GitLab")

    if isinstance(error, ConfigurationError):
        return f"The dashboard is not fully configured: {error}"
    if isinstance(error, AuthError):
        return (
            f"{service} rejected the API token. "
            "Check that it is set and has not expired."
        )
    if isinstance(error, SchemaChangeError):
        return (
            f"{service} returned data in an unexpected shape. "
            "The API may have changed; please try again later."
        )
    if isinstance(error, FetchFailedError):
        return f"{service} kept failing after several retries. {error}"
    if isinstance(error, TransientAPIError):
        return f"There was a temporary issue reaching {service}. Please try again shortly."
    if isinstance(error, PermanentAPIError):
        return f"{service} refused the request. {error}"
    return "Something went wrong. Please try again or check the server log."


async def safe_tool_wrapper(
    func,  # type: ignore[no-untyped-def]
    *args: object,
    context: dict | None = None,
    **kwargs: object,
) -> str:
    """Call an async function, catching errors and returning friendly messages.

    Args:
        func: Async callable to invoke.
        *args: Positional arguments for *func*.
        context: Optional context dict for error messages.
        **kwargs: Keyword arguments for *func*.

    Returns:
        The function's return value on success, or a user-friendly error string.
    """
    try:
        return await func(*args, **kwargs)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Tool error in %s", func.__name__)
        return get_user_message(exc, context)
