r"""Linear backoff strategy."""

from __future__ import annotations

__all__ = ["LinearBackoff"]

from resilientx.backoff.base import BaseBackoffStrategy


class LinearBackoff(BaseBackoffStrategy):
    """Linear backoff strategy.

    Calculates delay as: base_delay * attempt.

    Args:
        base_delay: The base delay in seconds (default: 0.1).

    Example:
        ```pycon
        >>> from resilientx.backoff import LinearBackoff
        >>> backoff = LinearBackoff(base_delay=1.0)
        >>> backoff.calculate(1)
        1.0
        >>> backoff.calculate(2)
        2.0
        >>> backoff.calculate(3)
        3.0

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
        return self.base_delay * attempt
