r"""JSON rendering of the structured fields attached to retry logs.

Each retry decision is logged at DEBUG level with fields such as
``method``, ``url``, ``attempt``, ``status_code`` and ``wait_time`` in
the ``extra`` mapping of the record. Plain formatters drop them;
``StructuredFormatter`` emits one JSON object per record that includes
them.

Example:
    ```python
    import logging
    from resilientx.utils.structured_logging import StructuredFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.getLogger("resilientx").addHandler(handler)
    logging.getLogger("resilientx").setLevel(logging.DEBUG)
    ```
"""

from __future__ import annotations

__all__ = ["StructuredFormatter", "log_structured"]

import json
import logging
import time
from typing import Any

# Attributes every LogRecord carries, as opposed to ``extra`` fields
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line JSON objects.

    The object holds ``timestamp`` (ISO 8601, UTC), ``level``, ``logger``
    and ``message``, an ``exception`` traceback when the record has one,
    and every ``extra`` field. Values json cannot encode are rendered
    with ``str``.

    Example:
        ```pycon
        >>> import json
        >>> import logging
        >>> from resilientx.utils.structured_logging import StructuredFormatter
        >>> record = logging.LogRecord("resilientx", logging.DEBUG, "", 0, "retrying", None, None)
        >>> record.attempt = 1
        >>> data = json.loads(StructuredFormatter().format(record))
        >>> data["message"], data["attempt"]
        ('retrying', 1)

        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )
        return json.dumps(payload, default=str)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: ARG002
        stamp = time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
        return f"{stamp}.{int(record.msecs):03d}Z"


def log_structured(logger: logging.Logger, level: int, message: str, **fields: Any) -> None:
    """Log ``message`` with ``fields`` attached as ``extra`` attributes.

    Nothing is built when ``logger`` is not enabled for ``level``.
    """
    if logger.isEnabledFor(level):
        logger.log(level, message, extra=fields, stacklevel=2)
