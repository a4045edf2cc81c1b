r"""Integration tests running clients against a local HTTP server."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from resilientx import TransportConfig, new_async_client, new_client
from resilientx.backoff import ConstantBackoff
from resilientx.deadline import deadline_after
from tests.helpers import Reply

if TYPE_CHECKING:
    from tests.helpers import LocalServer, RecordedRequest

pytestmark = [pytest.mark.slow, pytest.mark.usefixtures("clean_proxy_env")]

METHODS = [
    pytest.param("GET", b"", id="get"),
    pytest.param("POST", b"ping", id="post"),
    pytest.param("PUT", b"ping", id="put"),
    pytest.param("PATCH", b"ping", id="patch"),
    pytest.param("DELETE", b"", id="delete"),
    pytest.param("HEAD", b"", id="head"),
    pytest.param("OPTIONS", b"", id="options"),
]

# Short backoff keeping the retry tests fast
FAST_BACKOFF = ConstantBackoff(delay=0.01)


def fail_first(status_code: int, failures: int = 1):
    def reply(count: int, request: RecordedRequest) -> Reply:  # noqa: ARG001
        if count <= failures:
            return Reply(status_code=status_code)
        return Reply()

    return reply


@pytest.mark.parametrize(("method", "body"), METHODS)
def test_client_no_retries(local_server: LocalServer, method: str, body: bytes) -> None:
    with new_client() as client:
        response = client.request(method, local_server.url, content=body or None)

    assert response.status_code == 200
    assert local_server.count == 1
    assert local_server.requests[0].method == method
    assert local_server.requests[0].body == body
    if method != "HEAD":
        assert response.text == "pong\n"


@pytest.mark.parametrize(("method", "body"), METHODS)
def test_client_slow_server_within_deadline(
    local_server: LocalServer, method: str, body: bytes
) -> None:
    local_server.reply = lambda count, request: Reply(delay=0.1)

    with new_client() as client:
        response = client.request(method, local_server.url, content=body or None)

    assert response.status_code == 200
    assert local_server.count == 1


@pytest.mark.parametrize(("method", "body"), METHODS)
def test_client_deadline_exceeded(local_server: LocalServer, method: str, body: bytes) -> None:
    local_server.reply = lambda count, request: Reply(delay=0.5)
    config = TransportConfig(deadline=deadline_after(0.1), backoff=None)

    with new_client(config) as client, pytest.raises(httpx.ReadTimeout):
        client.request(method, local_server.url, content=body or None)

    assert local_server.count == 3


@pytest.mark.parametrize(("method", "body"), METHODS)
def test_client_no_retry_on_4xx(local_server: LocalServer, method: str, body: bytes) -> None:
    local_server.reply = lambda count, request: Reply(status_code=404)

    with new_client(TransportConfig(backoff=FAST_BACKOFF)) as client:
        response = client.request(method, local_server.url, content=body or None)

    assert response.status_code == 404
    assert local_server.count == 1


@pytest.mark.parametrize(("method", "body"), METHODS)
def test_client_fail_once_then_succeed(
    local_server: LocalServer, method: str, body: bytes
) -> None:
    local_server.reply = fail_first(500)

    with new_client(TransportConfig(backoff=FAST_BACKOFF)) as client:
        response = client.request(method, local_server.url, content=body or None)

    assert response.status_code == 200
    assert local_server.count == 2
    assert [request.body for request in local_server.requests] == [body, body]


@pytest.mark.parametrize(("method", "body"), METHODS)
def test_client_retries_exceeded(local_server: LocalServer, method: str, body: bytes) -> None:
    local_server.reply = lambda count, request: Reply(status_code=500)

    with new_client(TransportConfig(backoff=FAST_BACKOFF)) as client:
        response = client.request(method, local_server.url, content=body or None)

    assert response.status_code == 500
    assert local_server.count == 3
    if method != "HEAD":
        assert response.text == "pong\n"


def test_client_large_body_replayed(local_server: LocalServer) -> None:
    body = bytes(range(256)) * 4096
    local_server.reply = fail_first(503, failures=2)

    with new_client(TransportConfig(backoff=FAST_BACKOFF)) as client:
        response = client.post(f"{local_server.url}/upload", content=body)

    assert response.status_code == 200
    assert local_server.count == 3
    assert all(request.body == body for request in local_server.requests)
    assert all(request.path == "/upload" for request in local_server.requests)


def test_client_connection_refused() -> None:
    """Test that a refused connection is retried and the last error is
    raised."""
    calls = []
    config = TransportConfig(
        backoff=FAST_BACKOFF,
        on_retry=lambda request, response, error, attempt: calls.append(attempt),
    )

    # Port 9 (discard) is not expected to accept connections on loopback
    with new_client(config) as client, pytest.raises(httpx.ConnectError):
        client.get("http://127.0.0.1:9")

    assert calls == [1, 2]


@pytest.mark.asyncio
async def test_async_client_fail_once_then_succeed(local_server: LocalServer) -> None:
    local_server.reply = fail_first(502)

    async with new_async_client(TransportConfig(backoff=FAST_BACKOFF)) as client:
        response = await client.put(local_server.url, content=b"ping")

    assert response.status_code == 200
    assert [request.body for request in local_server.requests] == [b"ping", b"ping"]


@pytest.mark.asyncio
async def test_async_client_deadline_exceeded(local_server: LocalServer) -> None:
    local_server.reply = lambda count, request: Reply(delay=0.5)
    config = TransportConfig(deadline=deadline_after(0.1), max_tries=2, backoff=None)

    async with new_async_client(config) as client:
        with pytest.raises(httpx.ReadTimeout):
            await client.get(local_server.url)

    assert local_server.count == 2
