r"""Retry policies deciding whether a failed attempt warrants another.

Public API:
    - RetryPolicy: Callable type of a retry policy
    - default_retry_policy: Retry temporary network errors and 5xx responses
    - status_code_policy: Build a policy retrying an explicit set of codes
    - is_temporary_error: Classify an exception as transient or permanent
"""

from __future__ import annotations

__all__ = [
    "RetryPolicy",
    "default_retry_policy",
    "is_name_resolution_error",
    "is_temporary_error",
    "status_code_policy",
]

from resilientx.retry.errors import is_name_resolution_error, is_temporary_error
from resilientx.retry.policy import RetryPolicy, default_retry_policy, status_code_policy
