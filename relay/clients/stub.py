from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from relay.domain.errors import EndpointTransportError
from relay.domain.models import DeliveryRequest, EndpointResponse


@dataclass
class StubEndpointClient:
    """In-memory endpoint: records every request, fails the first ``fail_times`` sends.

    ``fail_times=None`` fails forever. ``hang`` blocks every send until
    ``release`` is set.
    """

    fail_times: int | None = 0
    hang: bool = False
    requests: list[DeliveryRequest] = field(default_factory=list)
    sent_at: list[float] = field(default_factory=list)
    release: asyncio.Event = field(default_factory=asyncio.Event)
    closed: bool = False

    async def send(self, request: DeliveryRequest) -> EndpointResponse:
        self.requests.append(request)
        self.sent_at.append(asyncio.get_running_loop().time())
        if self.hang:
            await self.release.wait()
        if self.fail_times is None or len(self.requests) <= self.fail_times:
            raise EndpointTransportError("connection refused")
        return EndpointResponse(status_code=200, detail="ok", elapsed_ms=0)

    async def aclose(self) -> None:
        self.closed = True
