r"""Retrying httpx transports.

This module provides ``RetryingTransport`` and ``AsyncRetryingTransport``,
decorators around an httpx transport that execute a logical request as a
bounded sequence of physical attempts. Between attempts they consult the
retry policy, replay the buffered request body, notify the optional
on-retry observer, release the discarded response and sleep according to
the backoff policy.

The transports never synthesize a "max retries exceeded" error: the
caller receives exactly what the final attempt produced, either a
response (possibly with a failing status) or the exception raised by the
underlying transport.

Example:
    ```pycon
    >>> import httpx
    >>> from resilientx import RetryingTransport, TransportConfig
    >>> attempts = []
    >>> def handler(request):
    ...     attempts.append(request)
    ...     return httpx.Response(503 if len(attempts) < 2 else 200)
    ...
    >>> transport = RetryingTransport(
    ...     httpx.MockTransport(handler), TransportConfig(backoff=None)
    ... )
    >>> with httpx.Client(transport=transport) as client:
    ...     client.get("https://api.example.com/data").status_code
    ...
    200
    >>> len(attempts)
    2

    ```
"""

from __future__ import annotations

__all__ = ["CANCEL_EXTENSION", "AsyncRetryingTransport", "RetryingTransport"]

import asyncio
import logging
import threading
import time
from typing import TYPE_CHECKING

import httpx

from resilientx.core.config import TransportConfig
from resilientx.exceptions import RetryCancelledError
from resilientx.utils.structured_logging import log_structured

if TYPE_CHECKING:
    from types import TracebackType
    from typing import Self

logger: logging.Logger = logging.getLogger(__name__)

# Request extension holding an optional cancellation token
CANCEL_EXTENSION = "resilientx.cancel"


def _decide(
    request: httpx.Request,
    response: httpx.Response | None,
    error: Exception | None,
    attempt: int,
    config: TransportConfig,
) -> tuple[bool, float]:
    """Return whether the loop ends after this attempt and, if not, how
    long to wait before the next one.

    The retry policy is not consulted on the last allowed attempt. The
    on-retry observer runs while the discarded response is still open.
    """
    if attempt == config.max_tries or not config.should_retry(request, response, error):
        return True, 0.0
    if config.on_retry is not None:
        config.on_retry(request, response, error, attempt)
    return False, 0.0 if config.backoff is None else config.backoff(attempt)


def _log_retry(
    request: httpx.Request,
    response: httpx.Response | None,
    error: Exception | None,
    attempt: int,
    max_tries: int,
    wait_time: float,
) -> None:
    status_code = None if response is None else response.status_code
    reason = f"status {status_code}" if response is not None else f"{type(error).__name__}"
    log_structured(
        logger,
        logging.DEBUG,
        f"{request.method} request to {request.url} failed with {reason} "
        f"(attempt {attempt}/{max_tries}), retrying in {wait_time:.2f}s",
        method=request.method,
        url=str(request.url),
        attempt=attempt,
        max_tries=max_tries,
        status_code=status_code,
        error=None if error is None else repr(error),
        wait_time=wait_time,
    )


def _log_final(
    request: httpx.Request,
    response: httpx.Response | None,
    error: Exception | None,
    attempt: int,
    max_tries: int,
) -> None:
    if attempt == 1:
        return
    if error is None and response is not None:
        logger.debug(
            f"{request.method} request to {request.url} returned status "
            f"{response.status_code} on attempt {attempt}/{max_tries}"
        )
    else:
        logger.debug(
            f"{request.method} request to {request.url} failed on attempt "
            f"{attempt}/{max_tries}: {error!r}"
        )


class RetryingTransport(httpx.BaseTransport):
    r"""Transport retrying requests sent through a wrapped transport.

    Many requests may share one instance concurrently: the configuration
    is immutable and all per-request state (attempt counter, buffered
    body) lives in local variables of ``execute``.

    A cancellation token can be attached to a request through the
    ``"resilientx.cancel"`` request extension. It must be a
    ``threading.Event``; once set, no further attempt is made and the
    backoff sleep is interrupted.

    Args:
        transport: The underlying transport executing single attempts.
            It must not retry internally.
        config: The transport configuration. If ``None``, a default
            ``TransportConfig`` is used.

    Example:
        ```pycon
        >>> import threading
        >>> import httpx
        >>> from resilientx import CANCEL_EXTENSION, RetryingTransport
        >>> transport = RetryingTransport(httpx.MockTransport(lambda request: httpx.Response(200)))
        >>> with httpx.Client(transport=transport) as client:
        ...     response = client.get(
        ...         "https://api.example.com/data",
        ...         extensions={CANCEL_EXTENSION: threading.Event()},
        ...     )
        ...
        >>> response.status_code
        200

        ```
    """

    def __init__(
        self,
        transport: httpx.BaseTransport,
        config: TransportConfig | None = None,
    ) -> None:
        self._transport = transport
        self._config = config or TransportConfig()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(transport={self._transport!r}, "
            f"max_tries={self._config.max_tries})"
        )

    @property
    def config(self) -> TransportConfig:
        return self._config

    @property
    def transport(self) -> httpx.BaseTransport:
        return self._transport

    def __enter__(self) -> Self:
        self._transport.__enter__()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        self._transport.__exit__(exc_type, exc_value, traceback)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        return self.execute(request, cancel=request.extensions.get(CANCEL_EXTENSION))

    def close(self) -> None:
        self._transport.close()

    def execute(
        self, request: httpx.Request, cancel: threading.Event | None = None
    ) -> httpx.Response:
        """Execute a logical request as a sequence of attempts.

        Args:
            request: The request to send. Its body is read into memory
                once and replayed on every attempt.
            cancel: Optional cancellation token. When set, the retry loop
                stops before the next attempt.

        Returns:
            The response of the final attempt.

        Raises:
            Exception: The error raised by the final attempt, or by
                reading the request body.
            RetryCancelledError: If ``cancel`` is set before the loop ends.
        """
        config = self._config
        if config.max_tries == 1 and cancel is None:
            return self._transport.handle_request(request)

        body = request.read()
        attempt = 1
        while True:
            if cancel is not None and cancel.is_set():
                msg = f"{request.method} request to {request.url} cancelled"
                raise RetryCancelledError(msg, request=request, attempts=attempt - 1)

            request.stream = httpx.ByteStream(body)
            response: httpx.Response | None = None
            error: Exception | None = None
            try:
                response = self._transport.handle_request(request)
            except Exception as exc:  # noqa: BLE001
                error = exc

            try:
                done, wait_time = _decide(request, response, error, attempt, config)
            except BaseException:
                # Release the discarded response before propagating
                if response is not None:
                    response.close()
                raise

            if done:
                _log_final(request, response, error, attempt, config.max_tries)
                if error is not None:
                    raise error
                return response

            if response is not None:
                response.close()

            _log_retry(request, response, error, attempt, config.max_tries, wait_time)
            if wait_time > 0:
                if cancel is None:
                    time.sleep(wait_time)
                elif cancel.wait(wait_time):
                    msg = f"{request.method} request to {request.url} cancelled"
                    raise RetryCancelledError(msg, request=request, attempts=attempt) from error

            attempt += 1


class AsyncRetryingTransport(httpx.AsyncBaseTransport):
    r"""Asynchronous counterpart of ``RetryingTransport``.

    The retry loop is cancelled like any other coroutine, by cancelling
    the task awaiting it. An ``asyncio.Event`` may also be attached
    through the ``"resilientx.cancel"`` request extension; once set, no
    further attempt is made and the backoff sleep is interrupted.

    Args:
        transport: The underlying asynchronous transport.
        config: The transport configuration. If ``None``, a default
            ``TransportConfig`` is used.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        config: TransportConfig | None = None,
    ) -> None:
        self._transport = transport
        self._config = config or TransportConfig()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(transport={self._transport!r}, "
            f"max_tries={self._config.max_tries})"
        )

    @property
    def config(self) -> TransportConfig:
        return self._config

    @property
    def transport(self) -> httpx.AsyncBaseTransport:
        return self._transport

    async def __aenter__(self) -> Self:
        await self._transport.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        await self._transport.__aexit__(exc_type, exc_value, traceback)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self.execute(request, cancel=request.extensions.get(CANCEL_EXTENSION))

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def execute(
        self, request: httpx.Request, cancel: asyncio.Event | None = None
    ) -> httpx.Response:
        """Execute a logical request as a sequence of attempts.

        Args:
            request: The request to send. Its body is read into memory
                once and replayed on every attempt.
            cancel: Optional cancellation event.

        Returns:
            The response of the final attempt.

        Raises:
            Exception: The error raised by the final attempt, or by
                reading the request body.
            RetryCancelledError: If ``cancel`` is set before the loop ends.
        """
        config = self._config
        if config.max_tries == 1 and cancel is None:
            return await self._transport.handle_async_request(request)

        body = await request.aread()
        attempt = 1
        while True:
            if cancel is not None and cancel.is_set():
                msg = f"{request.method} request to {request.url} cancelled"
                raise RetryCancelledError(msg, request=request, attempts=attempt - 1)

            request.stream = httpx.ByteStream(body)
            response: httpx.Response | None = None
            error: Exception | None = None
            try:
                response = await self._transport.handle_async_request(request)
            except Exception as exc:  # noqa: BLE001
                error = exc

            try:
                done, wait_time = _decide(request, response, error, attempt, config)
            except BaseException:
                if response is not None:
                    await response.aclose()
                raise

            if done:
                _log_final(request, response, error, attempt, config.max_tries)
                if error is not None:
                    raise error
                return response

            if response is not None:
                await response.aclose()

            _log_retry(request, response, error, attempt, config.max_tries, wait_time)
            if wait_time > 0:
                if cancel is None:
                    await asyncio.sleep(wait_time)
                elif await _wait_event(cancel, wait_time):
                    msg = f"{request.method} request to {request.url} cancelled"
                    raise RetryCancelledError(msg, request=request, attempts=attempt) from error

            attempt += 1


async def _wait_event(event: asyncio.Event, timeout: float) -> bool:
    """Wait for an event for at most ``timeout`` seconds and return
    whether it was set."""
    try:
        await asyncio.wait_for(event.wait(), timeout)
    except asyncio.TimeoutError:
        return False
    return True
