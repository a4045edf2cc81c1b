r"""Core configuration and validation for the retrying transport."""

from __future__ import annotations

__all__ = [
    "DEFAULT_DIAL_TIMEOUT",
    "DEFAULT_MAX_TRIES",
    "OnRetry",
    "TransportConfig",
    "validate_callable",
    "validate_dial_timeout",
    "validate_max_tries",
]

from resilientx.core.config import (
    DEFAULT_DIAL_TIMEOUT,
    DEFAULT_MAX_TRIES,
    OnRetry,
    TransportConfig,
)
from resilientx.core.validation import (
    validate_callable,
    validate_dial_timeout,
    validate_max_tries,
)
