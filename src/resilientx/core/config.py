r"""Configuration dataclass and defaults for the retrying transport.

This module provides configuration constants and an immutable
configuration object bundling the pluggable policies of a
``RetryingTransport``. A configuration is typically built once at
process startup and shared by every request going through a transport.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_DIAL_TIMEOUT",
    "DEFAULT_MAX_TRIES",
    "OnRetry",
    "TransportConfig",
]

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

import httpx

from resilientx.backoff import BackoffPolicy, ExponentialBackoff
from resilientx.core.validation import (
    validate_callable,
    validate_dial_timeout,
    validate_max_tries,
)
from resilientx.deadline import DeadlinePolicy, default_deadline
from resilientx.retry import RetryPolicy, default_retry_policy

OnRetry = Callable[[httpx.Request, httpx.Response | None, Exception | None, int], Any]

# Default bound in seconds on connection establishment
DEFAULT_DIAL_TIMEOUT = 10.0

# Default hard ceiling on attempts, including the first one
DEFAULT_MAX_TRIES = 3


@dataclass(frozen=True)
class TransportConfig:
    """Configuration of a retrying transport.

    The configuration is immutable so that a single instance can be
    shared by concurrent requests.

    Args:
        deadline: Policy returning the absolute read/write deadline of a
            new connection, or ``None`` to disable connection deadlines.
        dial_timeout: Bound in seconds on connection establishment, or
            ``None`` for no bound.
        max_tries: Hard ceiling on the number of attempts. Must be >= 1.
        should_retry: Policy deciding whether an attempt is retried.
        backoff: Policy returning the delay before the next attempt, or
            ``None`` to retry immediately.
        on_retry: Optional observer called with
            ``(request, response, error, attempt)`` before each retry.

    Example:
        ```pycon
        >>> from resilientx.backoff import LinearBackoff
        >>> from resilientx.core.config import TransportConfig
        >>> config = TransportConfig()
        >>> config.max_tries
        3
        >>> config = TransportConfig(max_tries=5, backoff=LinearBackoff(base_delay=0.5))
        >>> config.backoff(2)
        1.0
        >>> merged = config.merge(max_tries=2)
        >>> merged.max_tries
        2
        >>> config.max_tries  # Original unchanged
        5

        ```
    """

    deadline: DeadlinePolicy | None = default_deadline
    dial_timeout: float | None = DEFAULT_DIAL_TIMEOUT
    max_tries: int = DEFAULT_MAX_TRIES
    should_retry: RetryPolicy = default_retry_policy
    backoff: BackoffPolicy | None = field(default_factory=ExponentialBackoff)
    on_retry: OnRetry | None = None

    def __post_init__(self) -> None:
        """Validate configuration parameters after initialization.

        Raises:
            TypeError: If a policy is not callable or max_tries is not an int.
            ValueError: If max_tries or dial_timeout are out of range.
        """
        validate_max_tries(self.max_tries)
        validate_dial_timeout(self.dial_timeout)
        validate_callable("deadline", self.deadline)
        validate_callable("should_retry", self.should_retry, optional=False)
        validate_callable("backoff", self.backoff)
        validate_callable("on_retry", self.on_retry)

    def merge(self, **overrides: Any) -> TransportConfig:
        """Create a new config with specified parameters overridden.

        Unlike the constructor, ``None`` values are ignored so that
        optional arguments can be forwarded as-is.

        Args:
            **overrides: Keyword arguments for parameters to override.

        Returns:
            A new TransportConfig instance with overrides applied.
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary format.

        Returns:
            Dictionary with the configuration parameters.
        """
        return {
            "deadline": self.deadline,
            "dial_timeout": self.dial_timeout,
            "max_tries": self.max_tries,
            "should_retry": self.should_retry,
            "backoff": self.backoff,
            "on_retry": self.on_retry,
        }
