r"""Abstract base class and callable type for backoff policies."""

from __future__ import annotations

__all__ = ["BackoffPolicy", "BaseBackoffStrategy"]

from abc import ABC, abstractmethod
from collections.abc import Callable

BackoffPolicy = Callable[[int], float]


class BaseBackoffStrategy(ABC):
    """Abstract base class for backoff strategies.

    A backoff strategy determines how long to wait before the next
    attempt based on the number of the attempt that just failed.
    Instances are callable, which makes them valid ``BackoffPolicy``
    values.
    """

    def __call__(self, attempt: int) -> float:
        return self.calculate(attempt)

    @abstractmethod
    def calculate(self, attempt: int) -> float:
        """Calculate the delay before the next attempt.

        Args:
            attempt: The number of the attempt that just failed
                (1-indexed). For example, attempt=1 is passed after the
                first attempt, before the first retry.

        Returns:
            The delay in seconds before the next attempt.
        """
