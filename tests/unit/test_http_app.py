from __future__ import annotations

import logging
from pathlib import Path

from fastapi.testclient import TestClient
import pytest

from relay.api.http_app import build_app
from relay.clients.stub import StubEndpointClient
from relay.config import EndpointSettings, JobConfig, RelayConfig, RetrySettings
from relay.repositories.stub import InMemoryDataSource
from relay.services.bootstrap import build_runtime_container


def _container(endpoint: StubEndpointClient):
    config = RelayConfig(
        endpoint=EndpointSettings(
            url="https://receiver.test/ingest",
            retry=RetrySettings(limit=1, interval_ms=10),
        ),
        jobs=(JobConfig(name="orders", pull_query="SELECT a FROM outbox", interval_ms=60000),),
    )
    return build_runtime_container(
        config,
        data_source=InMemoryDataSource(results={"SELECT a FROM outbox": [{"a": 1}]}),
        endpoint=endpoint,
    )


@pytest.mark.unit
def test_health_ready_and_report_endpoints() -> None:
    endpoint = StubEndpointClient()
    container = _container(endpoint)
    app = build_app(container, run_id="run-1")

    with TestClient(app) as client:
        health = client.get("/health")
        assert health.status_code == 200
        assert health.json() == {"status": "ok", "mode": "custom"}

        ready = client.get("/ready")
        assert ready.status_code == 200
        payload = ready.json()
        assert payload["status"] == "ready"
        assert payload["queue_active"] is False
        assert payload["active_count"] == 0
        assert payload["shutting_down"] is False
        assert payload["scheduler_running"] is True
        assert payload["scheduler_metrics"]["started"] is True

        report = client.get("/report")
        assert report.status_code == 200
        assert report.json() == {"RUNNING": [], "FAILED": [], "SUCCESSFUL": []}

    assert container.queue.shutting_down is True
    assert container.scheduler.state.stopped is True
    assert endpoint.closed is True


@pytest.mark.unit
def test_shutdown_writes_report_file(tmp_path: Path) -> None:
    container = _container(StubEndpointClient())
    app = build_app(container, run_id="run-2", report_dir=tmp_path)

    with TestClient(app):
        pass

    reports = list(tmp_path.glob("job_report_*.csv"))
    assert len(reports) == 1
    content = reports[0].read_text(encoding="utf-8")
    assert "RUNNING" in content
    assert content.count("[EMPTY]") == 3


@pytest.mark.unit
def test_unwritable_report_dir_still_closes_endpoint(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    endpoint = StubEndpointClient()
    container = _container(endpoint)
    app = build_app(container, run_id="run-3", report_dir=blocker)

    with caplog.at_level(logging.INFO, logger="relay"):
        with TestClient(app):
            pass

    assert endpoint.closed is True
    assert container.queue.shutting_down is True
    messages = [record.getMessage() for record in caplog.records]
    assert "job report save failed" in messages
    assert "relay stopped" in messages
