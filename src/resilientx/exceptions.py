r"""Exceptions raised by the retrying transports.

The transports never wrap the error of the final attempt: whatever the
underlying transport raised is propagated unchanged. The only exception
created here signals that a retry loop was abandoned by its caller.
"""

from __future__ import annotations

__all__ = ["RetryCancelledError"]

import httpx


class RetryCancelledError(httpx.TransportError):
    """Raised when a cancellation token stops a retry loop.

    Args:
        message: The error message.
        request: The request whose retry loop was cancelled.
        attempts: The number of attempts made before cancellation.

    Example:
        ```pycon
        >>> import httpx
        >>> from resilientx.exceptions import RetryCancelledError
        >>> request = httpx.Request("GET", "https://api.example.com")
        >>> error = RetryCancelledError("cancelled", request=request, attempts=2)
        >>> error.attempts
        2

        ```
    """

    def __init__(self, message: str, *, request: httpx.Request, attempts: int) -> None:
        super().__init__(message, request=request)
        self.attempts = attempts
