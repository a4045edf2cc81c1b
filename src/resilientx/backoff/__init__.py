r"""Backoff policies for inter-attempt delays.

A backoff policy is any callable that maps the 1-based number of the
attempt that just failed to a delay in seconds. The strategies provided
here are callable objects, so they can be used wherever a plain function
is accepted.
"""

from __future__ import annotations

__all__ = [
    "BackoffPolicy",
    "BaseBackoffStrategy",
    "ConstantBackoff",
    "ExponentialBackoff",
    "LinearBackoff",
]

from resilientx.backoff.base import BackoffPolicy, BaseBackoffStrategy
from resilientx.backoff.constant import ConstantBackoff
from resilientx.backoff.exponential import ExponentialBackoff
from resilientx.backoff.linear import LinearBackoff
