from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from relay.domain.errors import DomainInvariantError
from relay.domain.lifecycle import DeliveryStatus
from relay.domain.models import DeliveryReport

if TYPE_CHECKING:
    from relay.delivery.item import DeliveryItem


@dataclass
class QueueRegistry:
    """Active and historical delivery items, keyed by item id.

    Both maps are mutated only by synchronous insert/delete between await
    points, so the event loop needs no lock around them.
    """

    _active: dict[str, DeliveryItem] = field(default_factory=dict)
    _history: dict[str, DeliveryItem] = field(default_factory=dict)

    def register(self, item: DeliveryItem) -> None:
        if item.id in self._history:
            raise DomainInvariantError(f"delivery item already registered: {item.id}")
        if not item.is_active:
            raise DomainInvariantError(f"cannot register inactive delivery item: {item.id}")
        self._history[item.id] = item
        self._active[item.id] = item

    def release(self, item: DeliveryItem) -> None:
        if self._active.pop(item.id, None) is None:
            raise DomainInvariantError(f"delivery item is not active: {item.id}")

    def is_active(self) -> bool:
        return len(self._active) > 0

    def active_count(self) -> int:
        return len(self._active)

    def active_items(self) -> list[DeliveryItem]:
        return list(self._active.values())

    def items(self) -> list[DeliveryItem]:
        return list(self._history.values())

    def get(self, item_id: str) -> DeliveryItem | None:
        return self._history.get(item_id)

    def contains_active(self, item_id: str) -> bool:
        return item_id in self._active


def build_report(items: Iterable[DeliveryItem]) -> DeliveryReport:
    """Partition items into RUNNING / FAILED / SUCCESSFUL at call time."""
    report = DeliveryReport()
    for item in items:
        if item.is_active:
            report.running.append(item.brief)
        elif item.status is DeliveryStatus.SUCCESS:
            report.successful.append(item.brief)
        else:
            report.failed.append(item.brief)
    return report
