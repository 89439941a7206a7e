from __future__ import annotations

from typing import Protocol, runtime_checkable

from relay.domain.models import DeliveryRequest, EndpointResponse, Row


@runtime_checkable
class DataSourceGateway(Protocol):
    """Single-statement query contract.

    Every call opens its own connection and closes it whether the statement
    succeeded or failed. Implementations never retry; failures surface as
    DataSourceError.
    """

    async def execute(self, query: str) -> list[Row]: ...


@runtime_checkable
class DeliveryEndpointGateway(Protocol):
    """One outbound HTTP call per send.

    Raises EndpointTransportError for network failures and EndpointHTTPError
    for non-2xx responses. Retries belong to the delivery item, not here.
    """

    async def send(self, request: DeliveryRequest) -> EndpointResponse: ...

    async def aclose(self) -> None: ...
