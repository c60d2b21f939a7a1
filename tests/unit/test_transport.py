"""Unit tests for media_summarizer.transport - the httpx-backed HTTP client."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
import respx
from httpx import Response

from media_summarizer.exceptions import (
    RequestCancelledError,
    RequestTimeoutError,
    TransportError,
)
from media_summarizer.transport import HttpxClient

URL = "https://api.example.test/v1/chat/completions"


class TestHttpxClient:
    """Status codes pass through; transport failures become typed errors."""

    @pytest.mark.asyncio
    async def test_returns_status_text_and_json(self, router: respx.MockRouter) -> None:
        route = router.post(URL).mock(return_value=Response(200, json={"ok": True}))
        response = await HttpxClient().request(
            "POST", URL, headers={"X-Test": "1"}, body={"model": "m"}
        )
        assert response.status_code == 200
        assert response.json == {"ok": True}
        sent = route.calls.last.request
        assert sent.headers["X-Test"] == "1"
        assert json.loads(sent.content) == {"model": "m"}

    @pytest.mark.asyncio
    async def test_non_json_body_has_none_json(self, router: respx.MockRouter) -> None:
        router.get(URL).mock(return_value=Response(502, text="Bad gateway"))
        response = await HttpxClient().request("GET", URL)
        assert response.status_code == 502
        assert response.text == "Bad gateway"
        assert response.json is None

    @pytest.mark.asyncio
    async def test_connect_error_is_transport_error(
        self, router: respx.MockRouter
    ) -> None:
        router.get(URL).mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(TransportError, match="Network error") as exc_info:
            await HttpxClient().request("GET", URL)
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_timeout_is_request_timeout_error(
        self, router: respx.MockRouter
    ) -> None:
        router.get(URL).mock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(RequestTimeoutError):
            await HttpxClient().request("GET", URL)

    @pytest.mark.asyncio
    async def test_uses_injected_client(self) -> None:
        transport = httpx.MockTransport(lambda request: Response(201, json={"id": 1}))
        async with httpx.AsyncClient(transport=transport) as client:
            response = await HttpxClient(client).request("POST", URL, body={})
        assert response.status_code == 201


class TestCancellation:
    """A set cancel event aborts the exchange."""

    @pytest.mark.asyncio
    async def test_pre_set_event_raises_without_sending(
        self, router: respx.MockRouter
    ) -> None:
        route = router.post(URL).mock(return_value=Response(200, json={}))
        event = asyncio.Event()
        event.set()
        with pytest.raises(RequestCancelledError):
            await HttpxClient().request("POST", URL, body={}, cancel_event=event)
        assert not route.called

    @pytest.mark.asyncio
    async def test_event_set_mid_flight(self) -> None:
        async def slow_handler(request: httpx.Request) -> Response:
            await asyncio.sleep(5)
            return Response(200, json={})

        event = asyncio.Event()
        async with httpx.AsyncClient(transport=httpx.MockTransport(slow_handler)) as client:
            loop = asyncio.get_running_loop()
            loop.call_later(0.05, event.set)
            with pytest.raises(RequestCancelledError):
                await HttpxClient(client).request("GET", URL, cancel_event=event)

    @pytest.mark.asyncio
    async def test_unset_event_completes_normally(
        self, router: respx.MockRouter
    ) -> None:
        router.get(URL).mock(return_value=Response(200, json={"ok": 1}))
        response = await HttpxClient().request("GET", URL, cancel_event=asyncio.Event())
        assert response.json == {"ok": 1}
