from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from relay.domain.lifecycle import DeliveryStatus

Row = dict[str, Any]


class PostprocessPolicy(StrEnum):
    # Postprocess outcome is logged and kept on the item, never raised.
    FIRE_AND_FORGET = "fire_and_forget"
    # Postprocess failure is raised to the caller; item status stays success.
    SURFACE = "surface"


@dataclass(frozen=True)
class DeliveryRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: bytes


@dataclass(frozen=True)
class EndpointResponse:
    status_code: int
    detail: str = ""
    elapsed_ms: int | None = None


@dataclass(frozen=True)
class DeliveryOutcome:
    reason: Literal["success", "empty"]
    item_id: str
    rows_sent: int = 0


@dataclass(frozen=True)
class DeliveryBrief:
    name: str
    status: DeliveryStatus
    duration_ms: int | None
    start: datetime | None
    end: datetime | None
    retries: int

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


@dataclass(frozen=True)
class DeliveryReport:
    running: list[DeliveryBrief] = field(default_factory=list)
    failed: list[DeliveryBrief] = field(default_factory=list)
    successful: list[DeliveryBrief] = field(default_factory=list)

    def sections(self) -> dict[str, list[DeliveryBrief]]:
        return {
            "RUNNING": self.running,
            "FAILED": self.failed,
            "SUCCESSFUL": self.successful,
        }

    def as_dict(self) -> dict[str, list[dict[str, object]]]:
        return {label: [asdict(brief) for brief in briefs] for label, briefs in self.sections().items()}

    @property
    def total(self) -> int:
        return len(self.running) + len(self.failed) + len(self.successful)


@dataclass(frozen=True)
class DrainResult:
    attempts: int
    forced: bool
    remaining: int
