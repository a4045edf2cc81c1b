from __future__ import annotations

import os
from typing import TYPE_CHECKING
from unittest.mock import Mock, patch

import pytest

from tests.helpers import LocalServer

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def mock_sleep() -> Generator[Mock, None, None]:
    """Patch time.sleep to make tests run faster."""
    with patch("time.sleep", return_value=None) as mock:
        yield mock


@pytest.fixture
def mock_asleep() -> Generator[Mock, None, None]:
    """Patch asyncio.sleep to make tests run faster."""
    with patch("asyncio.sleep", return_value=None) as mock:
        yield mock


@pytest.fixture
def mock_callback() -> Mock:
    """Create a mock callback function for testing observers."""
    return Mock()


@pytest.fixture
def local_server() -> Generator[LocalServer, None, None]:
    """Start a local HTTP server answering 200 to every request."""
    server = LocalServer()
    server.start()
    try:
        yield server
    finally:
        server.stop()


@pytest.fixture
def clean_proxy_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove the proxy variables (``HTTP_PROXY``, ``NO_PROXY``...) from
    the environment."""
    for name in list(os.environ):
        if name.lower().endswith("_proxy"):
            monkeypatch.delenv(name)
