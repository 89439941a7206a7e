from __future__ import annotations

import time

import httpx

from relay.domain.errors import EndpointHTTPError, EndpointTransportError
from relay.domain.models import DeliveryRequest, EndpointResponse


def _cap_text(s: str, *, max_chars: int) -> str:
    if len(s) <= max_chars:
        return s
    return s[:max_chars] + f"...(truncated, {len(s)} chars)"


class HttpxEndpointClient:
    """
    Delivery endpoint gateway over a shared httpx.AsyncClient.

    - One AsyncClient instance (connection pooling).
    - Does NOT retry; the delivery item owns the retry budget.
    - Non-2xx responses raise EndpointHTTPError, network errors raise
      EndpointTransportError.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 20.0,
        max_error_body_chars: int = 2_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._max_body = max_error_body_chars
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds), transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(self, request: DeliveryRequest) -> EndpointResponse:
        started = time.perf_counter()
        try:
            resp = await self._client.request(
                method=request.method,
                url=request.url,
                headers=request.headers,
                content=request.body,
            )
        except httpx.TimeoutException as e:
            raise EndpointTransportError(f"timeout: {e}") from e
        except httpx.RequestError as e:
            # DNS errors, connection refused, TLS, etc.
            raise EndpointTransportError(f"{type(e).__name__}: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise EndpointHTTPError(resp.status_code, _cap_text(resp.text, max_chars=self._max_body))

        return EndpointResponse(
            status_code=resp.status_code,
            detail=_cap_text(resp.text, max_chars=self._max_body),
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )
