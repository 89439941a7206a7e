from __future__ import annotations

import pytest

from relay.clients.stub import StubEndpointClient
from relay.config import EndpointSettings, RetrySettings
from relay.delivery.item import DeliveryDeps
from relay.delivery.registry import QueueRegistry
from relay.domain.models import PostprocessPolicy
from relay.repositories.stub import InMemoryDataSource

PULL_SQL = "SELECT a FROM outbox"
POSTPROCESS_SQL = "UPDATE outbox SET sent = true"


@pytest.fixture
def endpoint_settings() -> EndpointSettings:
    return EndpointSettings(
        url="https://receiver.test/ingest",
        retry=RetrySettings(limit=2, interval_ms=10),
    )


@pytest.fixture
def registry() -> QueueRegistry:
    return QueueRegistry()


@pytest.fixture
def data_source() -> InMemoryDataSource:
    return InMemoryDataSource(results={PULL_SQL: [{"a": 1}]})


@pytest.fixture
def endpoint() -> StubEndpointClient:
    return StubEndpointClient()


@pytest.fixture
def deps(
    registry: QueueRegistry,
    data_source: InMemoryDataSource,
    endpoint: StubEndpointClient,
    endpoint_settings: EndpointSettings,
) -> DeliveryDeps:
    return DeliveryDeps(
        registry=registry,
        data_source=data_source,
        endpoint=endpoint,
        endpoint_settings=endpoint_settings,
        postprocess_policy=PostprocessPolicy.FIRE_AND_FORGET,
    )
