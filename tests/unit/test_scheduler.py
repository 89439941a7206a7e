from __future__ import annotations

import asyncio

import pytest

from relay.clients.stub import StubEndpointClient
from relay.config import EndpointSettings, JobConfig
from relay.delivery.queue import DeliveryQueue
from relay.repositories.stub import InMemoryDataSource
from relay.workers.scheduler import JobScheduler

PULL_SQL = "SELECT a FROM outbox"


@pytest.mark.unit
def test_scheduler_dispatches_each_job_on_its_interval(endpoint_settings: EndpointSettings) -> None:
    endpoint = StubEndpointClient()
    queue = DeliveryQueue(
        data_source=InMemoryDataSource(results={PULL_SQL: [{"a": 1}]}),
        endpoint=endpoint,
        endpoint_settings=endpoint_settings,
    )
    scheduler = JobScheduler(
        jobs=(
            JobConfig(name="fast", pull_query=PULL_SQL, interval_ms=10),
            JobConfig(name="slow", pull_query=PULL_SQL, interval_ms=60000),
        ),
        queue=queue,
    )

    async def _run() -> None:
        scheduler.start()
        assert scheduler.running is True
        await asyncio.sleep(0.08)
        await scheduler.stop()
        await queue.shutdown()

    asyncio.run(_run())

    state = scheduler.state
    assert state.started is True
    assert state.stopped is True
    assert scheduler.running is False
    assert state.ticks_total.get("fast", 0) >= 2
    assert "slow" not in state.ticks_total
    assert state.dispatched_total == state.ticks_total["fast"]
    names = {brief.name for brief in queue.report().successful}
    assert names == {"fast"}
    assert len(endpoint.requests) == state.dispatched_total


@pytest.mark.unit
def test_scheduler_firings_after_shutdown_are_skipped(endpoint_settings: EndpointSettings) -> None:
    queue = DeliveryQueue(
        data_source=InMemoryDataSource(results={PULL_SQL: [{"a": 1}]}),
        endpoint=StubEndpointClient(),
        endpoint_settings=endpoint_settings,
    )
    scheduler = JobScheduler(jobs=(JobConfig(name="fast", pull_query=PULL_SQL, interval_ms=10),), queue=queue)

    async def _run() -> None:
        await queue.shutdown()
        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

    asyncio.run(_run())

    assert scheduler.state.dispatched_total == 0
    assert scheduler.state.skipped_total >= 1
    assert queue.report().total == 0
