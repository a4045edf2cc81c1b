r"""Shared test helpers: a response stream recording its release and a
local HTTP server recording the requests it receives."""

from __future__ import annotations

__all__ = ["LocalServer", "RecordedRequest", "Reply", "TrackedStream"]

import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator


@dataclass
class RecordedRequest:
    """A request received by ``LocalServer``."""

    method: str
    path: str
    body: bytes


@dataclass
class Reply:
    """The reply ``LocalServer`` sends for one request.

    Attributes:
        status_code: The HTTP status code.
        body: The response body, not sent for HEAD requests.
        delay: Seconds to wait before answering.
    """

    status_code: int = 200
    body: bytes = b"pong\n"
    delay: float = 0.0


@dataclass
class LocalServer:
    """Threaded HTTP server answering every request with ``reply``.

    ``reply`` is called with the number of the request (1-indexed) and
    the recorded request.
    """

    reply: Callable[[int, RecordedRequest], Reply] = field(default=lambda count, request: Reply())
    requests: list[RecordedRequest] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._server = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(self))
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def url(self) -> str:
        host, port = self._server.server_address[:2]
        return f"http://{host}:{port}"

    @property
    def count(self) -> int:
        with self._lock:
            return len(self.requests)

    def reset(self) -> None:
        with self._lock:
            self.requests.clear()

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()

    def record(self, request: RecordedRequest) -> Reply:
        with self._lock:
            self.requests.append(request)
            count = len(self.requests)
        return self.reply(count, request)


def _make_handler(server: LocalServer) -> type[BaseHTTPRequestHandler]:
    class Handler(BaseHTTPRequestHandler):
        def _handle(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            reply = server.record(RecordedRequest(method=self.command, path=self.path, body=body))
            if reply.delay > 0:
                threading.Event().wait(reply.delay)
            try:
                self.send_response(reply.status_code)
                self.send_header("Content-Type", "text/plain")
                self.send_header("Content-Length", str(len(reply.body)))
                self.send_header("Connection", "close")
                self.end_headers()
                if self.command != "HEAD":
                    self.wfile.write(reply.body)
            except (BrokenPipeError, ConnectionResetError):
                # The client gave up waiting (deadline exceeded)
                pass

        do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = do_HEAD = do_OPTIONS = _handle

        def log_message(self, format: str, *args: object) -> None:  # noqa: A002
            pass

    return Handler


class TrackedStream(httpx.SyncByteStream, httpx.AsyncByteStream):
    """Response stream that is not preloaded and records whether it was
    closed."""

    def __init__(self, content: bytes = b"pong") -> None:
        self._content = content
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        yield self._content

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield self._content

    def close(self) -> None:
        self.closed = True

    async def aclose(self) -> None:
        self.closed = True
