from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging

from relay.clients.http import HttpxEndpointClient
from relay.config import RelayConfig
from relay.delivery.queue import DeliveryQueue
from relay.domain.contracts import DataSourceGateway, DeliveryEndpointGateway
from relay.repositories.postgres import AsyncpgDataSource
from relay.repositories.stub import InMemoryDataSource
from relay.workers.scheduler import JobScheduler


@dataclass
class RuntimeContainer:
    config: RelayConfig
    data_source: DataSourceGateway
    endpoint: DeliveryEndpointGateway
    queue: DeliveryQueue
    scheduler: JobScheduler
    mode: str
    on_shutdown: Callable[[], Awaitable[None]] | None


def build_runtime_container(
    config: RelayConfig,
    *,
    data_source: DataSourceGateway | None = None,
    endpoint: DeliveryEndpointGateway | None = None,
) -> RuntimeContainer:
    mode = "custom"
    if data_source is None:
        if config.database_dsn:
            data_source = AsyncpgDataSource(dsn=config.database_dsn)
            mode = "postgres"
        else:
            data_source = InMemoryDataSource()
            mode = "skeleton"
    if endpoint is None:
        endpoint = HttpxEndpointClient(timeout_seconds=config.endpoint.timeout_seconds)

    queue = DeliveryQueue(
        data_source=data_source,
        endpoint=endpoint,
        endpoint_settings=config.endpoint,
        postprocess_policy=config.postprocess_policy,
    )
    scheduler = JobScheduler(jobs=config.jobs, queue=queue, logger=logging.getLogger("relay"))

    return RuntimeContainer(
        config=config,
        data_source=data_source,
        endpoint=endpoint,
        queue=queue,
        scheduler=scheduler,
        mode=mode,
        on_shutdown=endpoint.aclose,
    )
