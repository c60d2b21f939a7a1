"""HTTP transport used by every provider.

Providers depend only on the ``HttpClient`` protocol: method, URL, headers,
and JSON body in; status code, raw text, and parsed JSON (or ``None``) out.
``HttpxClient`` is the default implementation over ``httpx.AsyncClient``.
Status codes are not interpreted here; providers classify them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import httpx
import structlog

from media_summarizer.exceptions import (
    RequestCancelledError,
    RequestTimeoutError,
    TransportError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 120.0


@dataclass(frozen=True)
class HttpResponse:
    """Status, body text, and parsed JSON of one HTTP exchange."""

    status_code: int
    text: str
    json: Any = None


class HttpClient(Protocol):
    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> HttpResponse:
        """Perform one HTTP request."""
        ...


async def _await_cancellable(
    awaitable: Awaitable[HttpResponse], cancel_event: asyncio.Event
) -> HttpResponse:
    """Race ``awaitable`` against ``cancel_event``.

    Raises:
        RequestCancelledError: If the event fires first.
    """
    request_task = asyncio.ensure_future(awaitable)
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait(
            {request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        cancel_task.cancel()
        if not request_task.done():
            request_task.cancel()

    if request_task in done:
        return request_task.result()

    await asyncio.gather(request_task, return_exceptions=True)
    raise RequestCancelledError("Request was cancelled")


class HttpxClient:
    """``HttpClient`` implementation backed by ``httpx.AsyncClient``.

    Attributes:
        timeout: Default per-request timeout in seconds.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self.timeout = timeout

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> HttpResponse:
        """Perform one HTTP request.

        Args:
            method: HTTP method.
            url: Absolute request URL.
            headers: Request headers.
            body: JSON body, if any.
            timeout: Per-request timeout override in seconds.
            cancel_event: When set, aborts the exchange.

        Returns:
            The response status, text, and parsed JSON.

        Raises:
            RequestCancelledError: If ``cancel_event`` fires first.
            RequestTimeoutError: If the request times out.
            TransportError: On connection or protocol-level failures.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise RequestCancelledError("Request was cancelled before sending")

        send = self._send(method, url, headers, body, timeout or self.timeout)
        try:
            if cancel_event is None:
                return await send
            return await _await_cancellable(send, cancel_event)
        except httpx.TimeoutException as exc:
            logger.warning("http_timeout", method=method, url=url)
            raise RequestTimeoutError(f"Request to {url} timed out") from exc
        except httpx.ConnectError as exc:
            logger.warning("http_connect_failed", method=method, url=url)
            raise TransportError(f"Network error: could not connect to {url}") from exc
        except httpx.HTTPError as exc:
            logger.warning("http_error", method=method, url=url, error=str(exc))
            raise TransportError(f"Network error: {exc}") from exc

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None,
        body: dict[str, Any] | None,
        timeout: float,
    ) -> HttpResponse:
        if self._client is not None:
            response = await self._client.request(
                method, url, headers=headers, json=body, timeout=timeout
            )
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.request(
                    method, url, headers=headers, json=body
                )

        try:
            payload = response.json()
        except ValueError:
            payload = None

        logger.debug(
            "http_response",
            method=method,
            url=url,
            status_code=response.status_code,
        )
        return HttpResponse(
            status_code=response.status_code, text=response.text, json=payload
        )
