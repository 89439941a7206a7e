from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import inspect
import logging

from relay.delivery.registry import QueueRegistry
from relay.domain.errors import DomainInvariantError
from relay.domain.models import DrainResult

OnComplete = Callable[[], Awaitable[None] | None]
logger = logging.getLogger("relay")


@dataclass
class ShutdownDrainController:
    """Bounded polling of the active registry at shutdown.

    Polls every ``poll_interval_ms`` (the retry interval) until no active item
    remains or ``2 * retry_limit`` polls were made, then calls ``on_complete``
    exactly once.
    """

    registry: QueueRegistry
    retry_limit: int
    poll_interval_ms: int
    attempts: int = 0
    completed: bool = False

    @property
    def limit(self) -> int:
        return 2 * self.retry_limit

    @property
    def started(self) -> bool:
        return self.attempts > 0

    async def drain(self, on_complete: OnComplete | None = None) -> DrainResult:
        if self.started:
            raise DomainInvariantError("shutdown drain already started")

        while True:
            self.attempts += 1
            remaining = [item for item in self.registry.active_items() if item.is_active]
            logger.info(
                "shutdown drain attempt",
                extra={"drain_attempt": self.attempts, "drain_limit": self.limit, "active_count": len(remaining)},
            )
            if not remaining or self.attempts >= self.limit:
                break
            await asyncio.sleep(self.poll_interval_ms / 1000)

        forced = len(remaining) > 0
        if forced:
            logger.warning(
                "shutdown drain limit exceeded, forcing shutdown",
                extra={
                    "drain_attempt": self.attempts,
                    "drain_limit": self.limit,
                    "active_count": len(remaining),
                    "item_ids": [item.id for item in remaining],
                },
            )
        else:
            logger.info("shutdown drain completed", extra={"drain_attempt": self.attempts})

        self.completed = True
        if on_complete is not None:
            result = on_complete()
            if inspect.isawaitable(result):
                await result

        return DrainResult(attempts=self.attempts, forced=forced, remaining=len(remaining))
