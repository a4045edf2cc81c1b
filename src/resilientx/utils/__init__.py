r"""Utility helpers shared by the retrying transports."""

from __future__ import annotations

__all__ = ["StructuredFormatter", "log_structured"]

from resilientx.utils.structured_logging import StructuredFormatter, log_structured
