r"""Factory functions building httpx clients with retrying transports.

The factories bind a ``TransportConfig`` into httpx: the dial timeout
becomes the connect timeout, the deadline policy is installed on the
connection pool's network backend, keep-alive is disabled so that every
attempt runs on a fresh connection, and the resulting transport is
wrapped in a ``RetryingTransport``.

Example:
    ```pycon
    >>> from resilientx import TransportConfig, new_client
    >>> from resilientx.backoff import LinearBackoff
    >>> with new_client(TransportConfig(max_tries=5, backoff=LinearBackoff())) as client:  # doctest: +SKIP
    ...     response = client.get("https://api.example.com/data")
    ...

    ```
"""

from __future__ import annotations

__all__ = [
    "DeadlineHTTPTransport",
    "AsyncDeadlineHTTPTransport",
    "create_async_transport",
    "create_transport",
    "default_client",
    "new_async_client",
    "new_client",
]

import logging
import threading
from typing import TYPE_CHECKING, Any

import httpx
from httpx._utils import get_environment_proxies  # noqa: PLC2701

from resilientx.core.config import TransportConfig
from resilientx.deadline import AsyncDeadlineNetworkBackend, DeadlineNetworkBackend
from resilientx.transport import AsyncRetryingTransport, RetryingTransport

if TYPE_CHECKING:
    from collections.abc import Callable

    from resilientx.deadline import DeadlinePolicy

logger: logging.Logger = logging.getLogger(__name__)

# A single attempt never reuses the connection of a previous one
NO_KEEPALIVE_LIMITS = httpx.Limits(max_keepalive_connections=0)

# Client keyword arguments that only take effect on transports
_TRANSPORT_KWARGS = ("verify", "cert", "http1", "http2", "limits")

_default_client: httpx.Client | None = None
_default_client_lock = threading.Lock()


class DeadlineHTTPTransport(httpx.HTTPTransport):
    """HTTP transport applying a deadline policy to every connection.

    Args:
        deadline: The deadline policy, or ``None`` to disable deadlines.
        **kwargs: Keyword arguments passed to ``httpx.HTTPTransport``.
            ``limits`` defaults to a pool without keep-alive and
            ``retries`` is forced to 0.
    """

    def __init__(self, deadline: DeadlinePolicy | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("limits", NO_KEEPALIVE_LIMITS)
        kwargs["retries"] = 0
        super().__init__(**kwargs)
        if deadline is not None:
            # httpx does not expose the network backend of its pool
            pool = self._pool
            pool._network_backend = DeadlineNetworkBackend(deadline, pool._network_backend)  # noqa: SLF001


class AsyncDeadlineHTTPTransport(httpx.AsyncHTTPTransport):
    """Asynchronous counterpart of ``DeadlineHTTPTransport``."""

    def __init__(self, deadline: DeadlinePolicy | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("limits", NO_KEEPALIVE_LIMITS)
        kwargs["retries"] = 0
        super().__init__(**kwargs)
        if deadline is not None:
            pool = self._pool
            pool._network_backend = AsyncDeadlineNetworkBackend(  # noqa: SLF001
                deadline,
                pool._network_backend,  # noqa: SLF001
            )


def _client_timeout(config: TransportConfig) -> httpx.Timeout:
    """Return the httpx timeout matching a configuration.

    Reads and writes are bounded by the connection deadline only.
    """
    return httpx.Timeout(None, connect=config.dial_timeout)


def _pop_transport_kwargs(kwargs: dict[str, Any]) -> dict[str, Any]:
    """Move the client keyword arguments that configure connections into
    a dict of transport keyword arguments.

    httpx ignores them when the client is given an explicit transport.
    """
    transport_kwargs = {key: kwargs.pop(key) for key in _TRANSPORT_KWARGS if key in kwargs}
    transport_kwargs["trust_env"] = kwargs.get("trust_env", True)
    return transport_kwargs


def _environment_mounts(
    config: TransportConfig,
    factory: Callable[..., httpx.BaseTransport | httpx.AsyncBaseTransport],
    transport_kwargs: dict[str, Any],
) -> dict[str, Any]:
    """Build the client mounts routing requests through the proxies
    configured in the environment (``HTTP_PROXY``, ``HTTPS_PROXY``,
    ``ALL_PROXY``, ``NO_PROXY``).

    Proxied patterns get their own retrying transport; ``NO_PROXY``
    patterns map to ``None`` so they fall back to the default transport.
    """
    mounts: dict[str, Any] = {}
    for pattern, proxy in get_environment_proxies().items():
        if proxy is None:
            mounts[pattern] = None
        else:
            logger.debug(f"Routing {pattern} requests through the environment proxy")
            mounts[pattern] = factory(config, proxy=proxy, **transport_kwargs)
    return mounts


def create_transport(config: TransportConfig | None = None, **kwargs: Any) -> RetryingTransport:
    """Create a retrying transport over a fresh HTTP transport.

    Args:
        config: The transport configuration. If ``None``, a default
            ``TransportConfig`` is used.
        **kwargs: Keyword arguments passed to ``httpx.HTTPTransport``
            (e.g. ``proxy``, ``verify``).

    Returns:
        The retrying transport.
    """
    config = config or TransportConfig()
    return RetryingTransport(DeadlineHTTPTransport(config.deadline, **kwargs), config)


def create_async_transport(
    config: TransportConfig | None = None, **kwargs: Any
) -> AsyncRetryingTransport:
    """Create an asynchronous retrying transport over a fresh HTTP
    transport.

    Args:
        config: The transport configuration. If ``None``, a default
            ``TransportConfig`` is used.
        **kwargs: Keyword arguments passed to ``httpx.AsyncHTTPTransport``.

    Returns:
        The asynchronous retrying transport.
    """
    config = config or TransportConfig()
    return AsyncRetryingTransport(AsyncDeadlineHTTPTransport(config.deadline, **kwargs), config)


def new_client(config: TransportConfig | None = None, **kwargs: Any) -> httpx.Client:
    r"""Create an ``httpx.Client`` sending requests through a retrying
    transport.

    Proxies follow httpx conventions: an explicit ``proxy`` argument is
    used for every request, otherwise the environment proxies are honoured
    unless ``trust_env=False``. Proxied requests go through retrying
    transports of their own, so they are retried and bounded by the
    deadline like direct ones.

    Args:
        config: The transport configuration. If ``None``, a default
            ``TransportConfig`` is used.
        **kwargs: Keyword arguments passed to ``httpx.Client`` (e.g.
            ``base_url``, ``headers``). ``transport`` is not accepted.
            ``proxy``, ``verify``, ``cert``, ``http1``, ``http2`` and
            ``limits`` configure the underlying transports.

    Returns:
        The client.

    Raises:
        TypeError: If a ``transport`` keyword argument is given.

    Example:
        ```pycon
        >>> from resilientx import TransportConfig, new_client
        >>> client = new_client(TransportConfig(max_tries=2))
        >>> client.timeout.connect
        10.0
        >>> client.close()

        ```
    """
    if "transport" in kwargs:
        msg = "new_client() builds its own transport, got an explicit 'transport'"
        raise TypeError(msg)
    config = config or TransportConfig()
    kwargs.setdefault("timeout", _client_timeout(config))
    transport_kwargs = _pop_transport_kwargs(kwargs)
    proxy = kwargs.pop("proxy", None)
    mounts = {}
    if proxy is None and transport_kwargs["trust_env"]:
        mounts = _environment_mounts(config, create_transport, transport_kwargs)
    mounts.update(kwargs.pop("mounts", None) or {})
    logger.debug(f"Creating client with max_tries={config.max_tries}")
    return httpx.Client(
        transport=create_transport(config, proxy=proxy, **transport_kwargs),
        mounts=mounts,
        **kwargs,
    )


def new_async_client(config: TransportConfig | None = None, **kwargs: Any) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` sending requests through an
    asynchronous retrying transport.

    Proxies are handled as in ``new_client``.

    Args:
        config: The transport configuration. If ``None``, a default
            ``TransportConfig`` is used.
        **kwargs: Keyword arguments passed to ``httpx.AsyncClient``.

    Returns:
        The asynchronous client.

    Raises:
        TypeError: If a ``transport`` keyword argument is given.
    """
    if "transport" in kwargs:
        msg = "new_async_client() builds its own transport, got an explicit 'transport'"
        raise TypeError(msg)
    config = config or TransportConfig()
    kwargs.setdefault("timeout", _client_timeout(config))
    transport_kwargs = _pop_transport_kwargs(kwargs)
    proxy = kwargs.pop("proxy", None)
    mounts = {}
    if proxy is None and transport_kwargs["trust_env"]:
        mounts = _environment_mounts(config, create_async_transport, transport_kwargs)
    mounts.update(kwargs.pop("mounts", None) or {})
    logger.debug(f"Creating async client with max_tries={config.max_tries}")
    return httpx.AsyncClient(
        transport=create_async_transport(config, proxy=proxy, **transport_kwargs),
        mounts=mounts,
        **kwargs,
    )


def default_client() -> httpx.Client:
    """Return the process-wide client with the default configuration.

    The client is created on first use, exactly once even when called
    concurrently, and shared afterwards. Callers must not close it.

    Returns:
        The default client.

    Example:
        ```pycon
        >>> from resilientx import default_client
        >>> default_client() is default_client()
        True

        ```
    """
    global _default_client  # noqa: PLW0603
    if _default_client is None:
        with _default_client_lock:
            if _default_client is None:
                _default_client = new_client()
    return _default_client
