r"""Connection deadline policy and the httpcore backends enforcing it.

A deadline policy returns an absolute point in time, on the
``time.monotonic()`` clock, after which a connection is considered
unresponsive. The policy is evaluated once for every physical
connection, right after it is established, and bounds every subsequent
read, write and TLS handshake on that connection. Once the deadline has
passed, reads fail with ``httpcore.ReadTimeout`` and writes with
``httpcore.WriteTimeout``, which httpx surfaces as ``httpx.ReadTimeout``
and ``httpx.WriteTimeout``.

Example:
    ```pycon
    >>> import time
    >>> from resilientx.deadline import deadline_after, default_deadline
    >>> default_deadline() > time.monotonic()
    True
    >>> policy = deadline_after(0.5)
    >>> policy() - time.monotonic() <= 0.5
    True

    ```
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_DEADLINE_SECONDS",
    "AsyncDeadlineNetworkBackend",
    "AsyncDeadlineNetworkStream",
    "DeadlineNetworkBackend",
    "DeadlineNetworkStream",
    "DeadlinePolicy",
    "deadline_after",
    "default_deadline",
]

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import httpcore

if TYPE_CHECKING:
    import ssl
    from collections.abc import Iterable


logger: logging.Logger = logging.getLogger(__name__)

DeadlinePolicy = Callable[[], float]

# Read/write deadline applied to every new connection by default
DEFAULT_DEADLINE_SECONDS = 5.0


def default_deadline() -> float:
    """Return the default connection deadline.

    Returns:
        The ``time.monotonic()`` value five seconds from now.
    """
    return time.monotonic() + DEFAULT_DEADLINE_SECONDS


def deadline_after(seconds: float) -> DeadlinePolicy:
    """Build a deadline policy expiring a fixed delay after connection.

    Args:
        seconds: The delay in seconds. Must be > 0.

    Returns:
        The deadline policy.

    Raises:
        ValueError: If ``seconds`` is not positive.
    """
    if seconds <= 0:
        msg = f"seconds must be > 0, got {seconds}"
        raise ValueError(msg)

    def deadline() -> float:
        return time.monotonic() + seconds

    return deadline


def _bound_timeout(timeout: float | None, deadline: float) -> float | None:
    """Return the timeout of one I/O call, or ``None`` if the deadline
    has already passed."""
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        return None
    if timeout is None:
        return remaining
    return min(timeout, remaining)


class DeadlineNetworkStream(httpcore.NetworkStream):
    """Network stream bounding all I/O by an absolute deadline.

    Args:
        stream: The wrapped network stream.
        deadline: The absolute deadline on the ``time.monotonic()`` clock.
    """

    def __init__(self, stream: httpcore.NetworkStream, deadline: float) -> None:
        self._stream = stream
        self._deadline = deadline

    @property
    def deadline(self) -> float:
        return self._deadline

    def read(self, max_bytes: int, timeout: float | None = None) -> bytes:
        bounded = _bound_timeout(timeout, self._deadline)
        if bounded is None:
            msg = "connection read deadline exceeded"
            raise httpcore.ReadTimeout(msg)
        return self._stream.read(max_bytes, timeout=bounded)

    def write(self, buffer: bytes, timeout: float | None = None) -> None:
        bounded = _bound_timeout(timeout, self._deadline)
        if bounded is None:
            msg = "connection write deadline exceeded"
            raise httpcore.WriteTimeout(msg)
        self._stream.write(buffer, timeout=bounded)

    def close(self) -> None:
        self._stream.close()

    def start_tls(
        self,
        ssl_context: ssl.SSLContext,
        server_hostname: str | None = None,
        timeout: float | None = None,
    ) -> httpcore.NetworkStream:
        bounded = _bound_timeout(timeout, self._deadline)
        if bounded is None:
            msg = "connection deadline exceeded before TLS handshake"
            raise httpcore.ConnectTimeout(msg)
        stream = self._stream.start_tls(
            ssl_context, server_hostname=server_hostname, timeout=bounded
        )
        return DeadlineNetworkStream(stream, self._deadline)

    def get_extra_info(self, info: str) -> Any:
        return self._stream.get_extra_info(info)


class DeadlineNetworkBackend(httpcore.NetworkBackend):
    """Network backend applying a deadline policy to each connection.

    Connection establishment is bounded by the connect timeout httpx
    passes in; the deadline policy is evaluated once the connection is
    established.

    Args:
        deadline: The deadline policy.
        backend: The wrapped backend. Defaults to ``httpcore.SyncBackend``.
    """

    def __init__(
        self,
        deadline: DeadlinePolicy,
        backend: httpcore.NetworkBackend | None = None,
    ) -> None:
        self._deadline = deadline
        self._backend = backend or httpcore.SyncBackend()

    def _wrap(self, stream: httpcore.NetworkStream) -> DeadlineNetworkStream:
        deadline = self._deadline()
        logger.debug(f"Connection established, deadline in {deadline - time.monotonic():.3f}s")
        return DeadlineNetworkStream(stream, deadline)

    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: float | None = None,
        local_address: str | None = None,
        socket_options: Iterable[Any] | None = None,
    ) -> httpcore.NetworkStream:
        stream = self._backend.connect_tcp(
            host,
            port,
            timeout=timeout,
            local_address=local_address,
            socket_options=socket_options,
        )
        return self._wrap(stream)

    def connect_unix_socket(
        self,
        path: str,
        timeout: float | None = None,
        socket_options: Iterable[Any] | None = None,
    ) -> httpcore.NetworkStream:
        stream = self._backend.connect_unix_socket(
            path, timeout=timeout, socket_options=socket_options
        )
        return self._wrap(stream)

    def sleep(self, seconds: float) -> None:
        self._backend.sleep(seconds)


class AsyncDeadlineNetworkStream(httpcore.AsyncNetworkStream):
    """Asynchronous counterpart of ``DeadlineNetworkStream``."""

    def __init__(self, stream: httpcore.AsyncNetworkStream, deadline: float) -> None:
        self._stream = stream
        self._deadline = deadline

    @property
    def deadline(self) -> float:
        return self._deadline

    async def read(self, max_bytes: int, timeout: float | None = None) -> bytes:
        bounded = _bound_timeout(timeout, self._deadline)
        if bounded is None:
            msg = "connection read deadline exceeded"
            raise httpcore.ReadTimeout(msg)
        return await self._stream.read(max_bytes, timeout=bounded)

    async def write(self, buffer: bytes, timeout: float | None = None) -> None:
        bounded = _bound_timeout(timeout, self._deadline)
        if bounded is None:
            msg = "connection write deadline exceeded"
            raise httpcore.WriteTimeout(msg)
        await self._stream.write(buffer, timeout=bounded)

    async def aclose(self) -> None:
        await self._stream.aclose()

    async def start_tls(
        self,
        ssl_context: ssl.SSLContext,
        server_hostname: str | None = None,
        timeout: float | None = None,
    ) -> httpcore.AsyncNetworkStream:
        bounded = _bound_timeout(timeout, self._deadline)
        if bounded is None:
            msg = "connection deadline exceeded before TLS handshake"
            raise httpcore.ConnectTimeout(msg)
        stream = await self._stream.start_tls(
            ssl_context, server_hostname=server_hostname, timeout=bounded
        )
        return AsyncDeadlineNetworkStream(stream, self._deadline)

    def get_extra_info(self, info: str) -> Any:
        return self._stream.get_extra_info(info)


class AsyncDeadlineNetworkBackend(httpcore.AsyncNetworkBackend):
    """Asynchronous counterpart of ``DeadlineNetworkBackend``.

    Args:
        deadline: The deadline policy.
        backend: The wrapped backend. Defaults to ``httpcore.AnyIOBackend``.
    """

    def __init__(
        self,
        deadline: DeadlinePolicy,
        backend: httpcore.AsyncNetworkBackend | None = None,
    ) -> None:
        self._deadline = deadline
        self._backend = backend or httpcore.AnyIOBackend()

    def _wrap(self, stream: httpcore.AsyncNetworkStream) -> AsyncDeadlineNetworkStream:
        deadline = self._deadline()
        logger.debug(f"Connection established, deadline in {deadline - time.monotonic():.3f}s")
        return AsyncDeadlineNetworkStream(stream, deadline)

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: float | None = None,
        local_address: str | None = None,
        socket_options: Iterable[Any] | None = None,
    ) -> httpcore.AsyncNetworkStream:
        stream = await self._backend.connect_tcp(
            host,
            port,
            timeout=timeout,
            local_address=local_address,
            socket_options=socket_options,
        )
        return self._wrap(stream)

    async def connect_unix_socket(
        self,
        path: str,
        timeout: float | None = None,
        socket_options: Iterable[Any] | None = None,
    ) -> httpcore.AsyncNetworkStream:
        stream = await self._backend.connect_unix_socket(
            path, timeout=timeout, socket_options=socket_options
        )
        return self._wrap(stream)

    async def sleep(self, seconds: float) -> None:
        await self._backend.sleep(seconds)
