r"""Exponential backoff strategy."""

from __future__ import annotations

__all__ = ["ExponentialBackoff"]

from resilientx.backoff.base import BaseBackoffStrategy


class ExponentialBackoff(BaseBackoffStrategy):
    """Exponential backoff strategy.

    Calculates delay as: base_delay * (2 ** attempt). The delay grows
    without bound and carries no jitter; supply a custom policy when a
    ceiling or randomization is needed.

    This is the default backoff strategy of ``TransportConfig``.

    Args:
        base_delay: The base delay in seconds (default: 0.1).

    Example:
        ```pycon
        >>> from resilientx.backoff import ExponentialBackoff
        >>> backoff = ExponentialBackoff(base_delay=0.1)
        >>> backoff.calculate(1)  # After the first attempt
        0.2
        >>> backoff.calculate(2)  # After the second attempt
        0.4
        >>> backoff(3)  # Strategies are callable
        0.8

        ```
    """

    def __init__(self, base_delay: float = 0.1) -> None:
        if base_delay < 0:
            msg = f"base_delay must be non-negative, got {base_delay}"
            raise ValueError(msg)
        self.base_delay = base_delay

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(base_delay={self.base_delay})"

    def calculate(self, attempt: int) -> float:
        """Calculate exponential backoff delay.

        Args:
            attempt: The number of the attempt that just failed (1-indexed).

        Returns:
            The calculated delay: base_delay * (2 ** attempt).
        """
        return self.base_delay * (2**attempt)
