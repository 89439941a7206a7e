from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging

from relay.config import EndpointSettings
from relay.delivery.drain import OnComplete, ShutdownDrainController
from relay.delivery.item import DeliveryDeps, DeliveryItem
from relay.delivery.registry import QueueRegistry, build_report
from relay.domain.contracts import DataSourceGateway, DeliveryEndpointGateway
from relay.domain.errors import DeliveryFailure
from relay.domain.models import DeliveryReport, DrainResult, PostprocessPolicy, Row

logger = logging.getLogger("relay")


@dataclass
class DeliveryQueue:
    """Process-wide delivery queue: dispatch, liveness, drain and report."""

    data_source: DataSourceGateway
    endpoint: DeliveryEndpointGateway
    endpoint_settings: EndpointSettings
    postprocess_policy: PostprocessPolicy = PostprocessPolicy.FIRE_AND_FORGET
    registry: QueueRegistry = field(default_factory=QueueRegistry)
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, repr=False)

    def __post_init__(self) -> None:
        self._deps = DeliveryDeps(
            registry=self.registry,
            data_source=self.data_source,
            endpoint=self.endpoint,
            endpoint_settings=self.endpoint_settings,
            postprocess_policy=self.postprocess_policy,
        )
        self._drain = ShutdownDrainController(
            registry=self.registry,
            retry_limit=self.endpoint_settings.retry.limit,
            poll_interval_ms=self.endpoint_settings.retry.interval_ms,
        )

    @property
    def shutting_down(self) -> bool:
        return self._drain.started

    @property
    def drain_attempts(self) -> int:
        return self._drain.attempts

    def dispatch(self, name: str, pull_query: str, postprocess_query: str | None = None) -> DeliveryItem | None:
        """Create one delivery item and start its pull phase in the background.

        Returns None without creating anything once shutdown has started.
        Must be called from inside a running event loop; outside one it
        raises RuntimeError before anything is registered.
        """
        if self.shutting_down:
            logger.info("dispatch skipped: shutdown in progress", extra={"job": name})
            return None

        loop = asyncio.get_running_loop()
        item = DeliveryItem(
            name=name,
            pull_query=pull_query,
            postprocess_query=postprocess_query,
            deps=self._deps,
        )
        task = loop.create_task(self._run(item), name=f"delivery:{item.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return item

    async def _run(self, item: DeliveryItem) -> None:
        try:
            await item.pull()
        except DeliveryFailure:
            # Already logged at the transition that produced it.
            pass
        except Exception:
            logger.exception("delivery item crashed", extra={"job": item.name, "item_id": item.id})

    def is_active(self) -> bool:
        return self.registry.is_active()

    def active_count(self) -> int:
        return self.registry.active_count()

    async def query(self, text: str) -> list[Row]:
        return await self.data_source.execute(text)

    async def shutdown(self, on_complete: OnComplete | None = None) -> DrainResult:
        logger.info("shutdown requested", extra={"active_count": self.active_count()})
        return await self._drain.drain(on_complete)

    def report(self) -> DeliveryReport:
        return build_report(self.registry.items())
