r"""Classification of transport errors as temporary or permanent.

httpx does not expose a "temporary" flag on its exceptions, so the
classification is derived from the exception hierarchy:

- every ``httpx.TimeoutException`` is temporary, including the read and
  write timeouts raised when a connection deadline expires;
- ``httpx.NetworkError`` and ``httpx.RemoteProtocolError`` are temporary,
  unless the failure comes from name resolution (e.g. NXDOMAIN);
- anything else is permanent.
"""

from __future__ import annotations

__all__ = ["is_name_resolution_error", "is_temporary_error"]

import socket

import httpx


def is_name_resolution_error(error: BaseException) -> bool:
    """Indicate if an error was caused by a failed DNS lookup.

    The exception chain (``__cause__`` and ``__context__``) is walked
    because httpx wraps the ``socket.gaierror`` raised by the resolver.

    Args:
        error: The exception to inspect.

    Returns:
        ``True`` if a ``socket.gaierror`` appears in the chain.

    Example:
        ```pycon
        >>> import socket
        >>> import httpx
        >>> from resilientx.retry import is_name_resolution_error
        >>> try:
        ...     try:
        ...         raise socket.gaierror(-2, "Name or service not known")
        ...     except socket.gaierror as exc:
        ...         raise httpx.ConnectError("dns failure") from exc
        ... except httpx.ConnectError as err:
        ...     is_name_resolution_error(err)
        ...
        True

        ```
    """
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        if isinstance(current, socket.gaierror):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def is_temporary_error(error: BaseException | None) -> bool:
    """Indicate if an error is expected to succeed on retry.

    Args:
        error: The exception raised by the underlying transport, or
            ``None`` if the attempt produced a response.

    Returns:
        ``True`` if the error is transient, otherwise ``False``.

    Example:
        ```pycon
        >>> import httpx
        >>> from resilientx.retry import is_temporary_error
        >>> is_temporary_error(httpx.ReadTimeout("timed out"))
        True
        >>> is_temporary_error(httpx.ConnectError("connection refused"))
        True
        >>> is_temporary_error(httpx.UnsupportedProtocol("ftp"))
        False
        >>> is_temporary_error(None)
        False

        ```
    """
    if error is None:
        return False
    if isinstance(error, httpx.TimeoutException):
        return True
    if isinstance(error, httpx.ConnectError) and is_name_resolution_error(error):
        return False
    return isinstance(error, (httpx.NetworkError, httpx.RemoteProtocolError))
