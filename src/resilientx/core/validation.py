r"""Parameter validation utilities for the retrying transport.

This module provides validation functions for transport configuration
parameters to ensure they meet the required constraints before being
used by the retry loop or the client factory.
"""

from __future__ import annotations

__all__ = ["validate_callable", "validate_dial_timeout", "validate_max_tries"]

from typing import Any


def validate_max_tries(max_tries: int) -> None:
    """Validate the maximum number of attempts.

    Args:
        max_tries: Hard ceiling on the number of attempts of a logical
            request. Must be >= 1. A value of 1 disables retries.

    Raises:
        TypeError: If ``max_tries`` is not an integer.
        ValueError: If ``max_tries`` is lower than 1.

    Example:
        ```pycon
        >>> from resilientx.core.validation import validate_max_tries
        >>> validate_max_tries(3)
        >>> validate_max_tries(0)  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: max_tries must be >= 1, got 0

        ```
    """
    if isinstance(max_tries, bool) or not isinstance(max_tries, int):
        msg = f"max_tries must be an int, got {type(max_tries).__qualname__}"
        raise TypeError(msg)
    if max_tries < 1:
        msg = f"max_tries must be >= 1, got {max_tries}"
        raise ValueError(msg)


def validate_dial_timeout(dial_timeout: float | None) -> None:
    """Validate the connection establishment timeout.

    Args:
        dial_timeout: Maximum seconds to wait for a connection to be
            established, or ``None`` to wait indefinitely.

    Raises:
        ValueError: If ``dial_timeout`` is a numeric value <= 0.
    """
    if dial_timeout is not None and dial_timeout <= 0:
        msg = f"dial_timeout must be > 0, got {dial_timeout}"
        raise ValueError(msg)


def validate_callable(name: str, value: Any, *, optional: bool = True) -> None:
    """Validate that a policy is callable.

    Args:
        name: The parameter name, used in error messages.
        value: The value to validate.
        optional: If ``True``, ``None`` is accepted.

    Raises:
        TypeError: If ``value`` is not callable.
    """
    if value is None and optional:
        return
    if not callable(value):
        msg = f"{name} must be callable, got {type(value).__qualname__}"
        raise TypeError(msg)
