from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from relay.clients.http import HttpxEndpointClient
from relay.domain.errors import EndpointHTTPError, EndpointTransportError
from relay.domain.models import DeliveryRequest

REQUEST = DeliveryRequest(
    method="POST",
    url="https://receiver.test/ingest",
    headers={"Content-Type": "application/json", "Authorization": "Basic cmVsYXk6czNjcmV0"},
    body=b'[{"a": 1}]',
)


def _send(handler) -> object:
    async def _run() -> object:
        client = HttpxEndpointClient(transport=httpx.MockTransport(handler))
        try:
            return await client.send(REQUEST)
        finally:
            await client.aclose()

    return asyncio.run(_run())


@pytest.mark.unit
def test_client_posts_body_and_headers_verbatim() -> None:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202, text="accepted")

    response = _send(_handler)

    assert response.status_code == 202
    assert response.detail == "accepted"
    assert response.elapsed_ms is not None
    assert response.elapsed_ms >= 0
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "https://receiver.test/ingest"
    assert seen[0].headers["content-type"] == "application/json"
    assert seen[0].headers["authorization"] == "Basic cmVsYXk6czNjcmV0"
    assert json.loads(seen[0].content) == [{"a": 1}]


@pytest.mark.unit
def test_client_raises_http_error_for_non_2xx() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        del request
        return httpx.Response(503, text="maintenance")

    with pytest.raises(EndpointHTTPError) as exc_info:
        _send(_handler)

    assert exc_info.value.status_code == 503
    assert "maintenance" in str(exc_info.value)


@pytest.mark.unit
def test_client_raises_transport_error_for_network_failures() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(EndpointTransportError, match="ConnectError"):
        _send(_handler)


@pytest.mark.unit
def test_client_raises_transport_error_for_timeouts() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(EndpointTransportError, match="timeout"):
        _send(_handler)
