r"""Retry policy type and the default retry policy."""

from __future__ import annotations

__all__ = ["RetryPolicy", "default_retry_policy", "status_code_policy"]

from collections.abc import Callable

import httpx

from resilientx.retry.errors import is_temporary_error

RetryPolicy = Callable[[httpx.Request, httpx.Response | None, Exception | None], bool]


def default_retry_policy(
    request: httpx.Request,  # noqa: ARG001
    response: httpx.Response | None,
    error: Exception | None,
) -> bool:
    """Decide whether an attempt should be retried.

    An attempt is retried when it failed with a temporary network error
    (see ``is_temporary_error``) or when the server answered with a
    status code in ``[500, 600)``. Client errors (4xx) are treated as
    permanent and are never retried.

    Args:
        request: The request of the attempt.
        response: The response of the attempt, or ``None`` if the
            attempt raised an error.
        error: The error raised by the attempt, or ``None`` if a
            response was obtained.

    Returns:
        ``True`` if another attempt should be made.

    Example:
        ```pycon
        >>> import httpx
        >>> from resilientx.retry import default_retry_policy
        >>> request = httpx.Request("GET", "https://api.example.com")
        >>> default_retry_policy(request, httpx.Response(503), None)
        True
        >>> default_retry_policy(request, httpx.Response(404), None)
        False
        >>> default_retry_policy(request, None, httpx.ConnectTimeout("timed out"))
        True

        ```
    """
    if is_temporary_error(error):
        return True
    return response is not None and 500 <= response.status_code < 600


def status_code_policy(*status_codes: int) -> RetryPolicy:
    """Build a retry policy for an explicit set of status codes.

    Temporary network errors are retried as by ``default_retry_policy``;
    responses are retried only if their status code is listed.

    Args:
        *status_codes: The HTTP status codes that trigger a retry.

    Returns:
        The retry policy.

    Raises:
        ValueError: If no status code is given.

    Example:
        ```pycon
        >>> import httpx
        >>> from resilientx.retry import status_code_policy
        >>> policy = status_code_policy(429, 503)
        >>> request = httpx.Request("GET", "https://api.example.com")
        >>> policy(request, httpx.Response(429), None)
        True
        >>> policy(request, httpx.Response(500), None)
        False

        ```
    """
    if not status_codes:
        msg = "status_code_policy requires at least one status code"
        raise ValueError(msg)
    codes = frozenset(status_codes)

    def should_retry(
        request: httpx.Request,  # noqa: ARG001
        response: httpx.Response | None,
        error: Exception | None,
    ) -> bool:
        if is_temporary_error(error):
            return True
        return response is not None and response.status_code in codes

    return should_retry
