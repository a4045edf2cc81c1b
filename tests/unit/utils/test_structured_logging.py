from __future__ import annotations

import json
import logging
from io import StringIO
from typing import TYPE_CHECKING

import httpx
import pytest

from resilientx import RetryingTransport, TransportConfig
from resilientx.utils.structured_logging import StructuredFormatter, log_structured

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def json_logger() -> Generator[tuple[logging.Logger, StringIO], None, None]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    logger = logging.getLogger("resilientx.tests.structured")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    yield logger, stream
    logger.removeHandler(handler)


def read_records(stream: StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


#########################################
#     Tests for StructuredFormatter     #
#########################################


def test_structured_formatter_basic_log(json_logger: tuple[logging.Logger, StringIO]) -> None:
    logger, stream = json_logger
    logger.info("Test message")

    (record,) = read_records(stream)
    assert record["message"] == "Test message"
    assert record["level"] == "INFO"
    assert record["logger"] == "resilientx.tests.structured"
    assert record["timestamp"].endswith("Z")
    assert "exception" not in record


def test_structured_formatter_extra_fields(json_logger: tuple[logging.Logger, StringIO]) -> None:
    logger, stream = json_logger
    logger.debug("retrying", extra={"attempt": 2, "status_code": 503, "url": "https://x.org"})

    (record,) = read_records(stream)
    assert record["attempt"] == 2
    assert record["status_code"] == 503
    assert record["url"] == "https://x.org"
    assert "msg" not in record
    assert "args" not in record


def test_structured_formatter_non_serializable_extra(
    json_logger: tuple[logging.Logger, StringIO],
) -> None:
    logger, stream = json_logger
    logger.info("failed", extra={"error": ValueError("boom")})

    assert read_records(stream)[0]["error"] == "boom"


def test_structured_formatter_exception(json_logger: tuple[logging.Logger, StringIO]) -> None:
    logger, stream = json_logger
    try:
        msg = "broken"
        raise RuntimeError(msg)
    except RuntimeError:
        logger.exception("request failed")

    assert "RuntimeError: broken" in read_records(stream)[0]["exception"]


def test_structured_formatter_renders_retry_logs() -> None:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    logger = logging.getLogger("resilientx.transport")
    previous_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        transport = RetryingTransport(
            httpx.MockTransport(lambda request: httpx.Response(503)),
            TransportConfig(max_tries=2, backoff=None),
        )
        transport.handle_request(httpx.Request("GET", "https://api.example.com/data"))
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)

    retry = next(r for r in read_records(stream) if "wait_time" in r)
    assert retry["method"] == "GET"
    assert retry["url"] == "https://api.example.com/data"
    assert retry["attempt"] == 1
    assert retry["max_tries"] == 2
    assert retry["status_code"] == 503
    assert retry["wait_time"] == 0.0


####################################
#     Tests for log_structured     #
####################################


def test_log_structured(json_logger: tuple[logging.Logger, StringIO]) -> None:
    logger, stream = json_logger
    log_structured(logger, logging.DEBUG, "attempt failed", attempt=1, wait_time=0.2)

    (record,) = read_records(stream)
    assert record["message"] == "attempt failed"
    assert record["attempt"] == 1
    assert record["wait_time"] == 0.2


def test_log_structured_disabled_level(json_logger: tuple[logging.Logger, StringIO]) -> None:
    logger, stream = json_logger
    logger.setLevel(logging.WARNING)
    log_structured(logger, logging.DEBUG, "hidden", attempt=1)
    assert stream.getvalue() == ""
