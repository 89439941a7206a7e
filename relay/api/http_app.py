from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from pathlib import Path

from fastapi import FastAPI

from relay.api.schemas import HealthResponse, ReadyResponse, ReportResponse, SchedulerMetrics
from relay.reporting import report_file_name, save_report
from relay.services.bootstrap import RuntimeContainer


def build_app(
    container: RuntimeContainer,
    run_id: str,
    report_dir: str | Path | None = None,
) -> FastAPI:
    logger = logging.getLogger("relay")
    queue = container.queue
    scheduler = container.scheduler

    def _write_report() -> None:
        report = queue.report()
        logger.info(
            "job report",
            extra={"run_id": run_id, "report": report.as_dict()},
        )
        if report_dir is None:
            return
        try:
            path = save_report(report, Path(report_dir) / report_file_name())
        except OSError:
            logger.exception("job report save failed", extra={"run_id": run_id})
            return
        logger.info("job report saved", extra={"run_id": run_id, "report_path": str(path)})

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        del app
        logger.info("relay started", extra={"run_id": run_id})
        scheduler.start()

        yield

        await scheduler.stop()
        try:
            drain = await queue.shutdown(on_complete=_write_report)
        finally:
            if container.on_shutdown is not None:
                await container.on_shutdown()
        logger.info(
            "relay stopped",
            extra={"run_id": run_id, "drain_attempt": drain.attempts, "active_count": drain.remaining},
        )

    app = FastAPI(title="row-relay", version="0.1.0", lifespan=lifespan)

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", mode=container.mode)

    @app.get("/ready", response_model=ReadyResponse, tags=["System"])
    async def ready() -> ReadyResponse:
        state = scheduler.state
        return ReadyResponse(
            status="draining" if queue.shutting_down else "ready",
            mode=container.mode,
            queue_active=queue.is_active(),
            active_count=queue.active_count(),
            shutting_down=queue.shutting_down,
            scheduler_running=scheduler.running,
            scheduler_metrics=SchedulerMetrics(
                started=state.started,
                stopped=state.stopped,
                dispatched_total=state.dispatched_total,
                skipped_total=state.skipped_total,
                ticks_total=dict(state.ticks_total),
            ),
        )

    @app.get("/report", response_model=ReportResponse, tags=["Deliveries"])
    async def report() -> ReportResponse:
        return ReportResponse.from_report(queue.report())

    return app
