from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from relay.domain.lifecycle import DeliveryStatus
from relay.domain.models import DeliveryBrief, DeliveryReport


class HealthResponse(BaseModel):
    status: str
    mode: str


class SchedulerMetrics(BaseModel):
    started: bool
    stopped: bool
    dispatched_total: int
    skipped_total: int
    ticks_total: dict[str, int]


class ReadyResponse(BaseModel):
    status: str
    mode: str
    queue_active: bool
    active_count: int
    shutting_down: bool
    scheduler_running: bool
    scheduler_metrics: SchedulerMetrics


class DeliveryBriefResponse(BaseModel):
    name: str
    status: DeliveryStatus
    duration_ms: int | None
    start: datetime | None
    end: datetime | None
    retries: int = Field(ge=0)

    @classmethod
    def from_brief(cls, brief: DeliveryBrief) -> DeliveryBriefResponse:
        return cls(
            name=brief.name,
            status=brief.status,
            duration_ms=brief.duration_ms,
            start=brief.start,
            end=brief.end,
            retries=brief.retries,
        )


class ReportResponse(BaseModel):
    RUNNING: list[DeliveryBriefResponse]
    FAILED: list[DeliveryBriefResponse]
    SUCCESSFUL: list[DeliveryBriefResponse]

    @classmethod
    def from_report(cls, report: DeliveryReport) -> ReportResponse:
        return cls(
            RUNNING=[DeliveryBriefResponse.from_brief(brief) for brief in report.running],
            FAILED=[DeliveryBriefResponse.from_brief(brief) for brief in report.failed],
            SUCCESSFUL=[DeliveryBriefResponse.from_brief(brief) for brief in report.successful],
        )
