r"""resilientx - Retrying transports for httpx.

This package provides a decorator around httpx transports that adds
automatic retries, pluggable backoff and per-connection read/write
deadlines. Callers keep using an ordinary ``httpx.Client`` while transient
network failures and 5xx responses are retried transparently.

Key Features:
    - Bounded retries with a pluggable retry policy (temporary network
      errors and 5xx responses by default)
    - Pluggable backoff policies: exponential, linear, constant or any
      callable
    - Request body buffering and byte-identical replay on every attempt
    - Absolute read/write deadline applied to each new connection
    - Optional on-retry observer and cancellation token
    - Synchronous and asynchronous transports

Example:
    ```pycon
    >>> from resilientx import TransportConfig, default_client, new_client
    >>> from resilientx.backoff import LinearBackoff
    >>> # Use the process-wide default client
    >>> response = default_client().get("https://api.example.com/data")  # doctest: +SKIP
    >>> # Build a client with a custom configuration
    >>> config = TransportConfig(max_tries=5, backoff=LinearBackoff(base_delay=0.5))
    >>> with new_client(config) as client:  # doctest: +SKIP
    ...     response = client.post("https://api.example.com/data", json={"key": "value"})
    ...

    ```
"""

from __future__ import annotations

__all__ = [
    "CANCEL_EXTENSION",
    "AsyncRetryingTransport",
    "RetryCancelledError",
    "RetryingTransport",
    "TransportConfig",
    "__version__",
    "create_async_transport",
    "create_transport",
    "default_client",
    "default_retry_policy",
    "new_async_client",
    "new_client",
]

from importlib.metadata import PackageNotFoundError, version

from resilientx.client import (
    create_async_transport,
    create_transport,
    default_client,
    new_async_client,
    new_client,
)
from resilientx.core.config import TransportConfig
from resilientx.exceptions import RetryCancelledError
from resilientx.retry import default_retry_policy
from resilientx.transport import CANCEL_EXTENSION, AsyncRetryingTransport, RetryingTransport

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
