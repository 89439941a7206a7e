from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
import logging

from relay.config import EndpointSettings
from relay.delivery.registry import QueueRegistry
from relay.delivery.request import build_delivery_request
from relay.domain.contracts import DataSourceGateway, DeliveryEndpointGateway
from relay.domain.error_taxonomy import FailureReason, classify_failure
from relay.domain.errors import DeliveryFailure, DomainInvariantError
from relay.domain.ids import new_delivery_id
from relay.domain.lifecycle import ALLOWED_TRANSITIONS, STATE_TO_STATUS, DeliveryState, DeliveryStatus, is_terminal
from relay.domain.models import DeliveryBrief, DeliveryOutcome, PostprocessPolicy, Row

logger = logging.getLogger("relay")


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class DeliveryDeps:
    registry: QueueRegistry
    data_source: DataSourceGateway
    endpoint: DeliveryEndpointGateway
    endpoint_settings: EndpointSettings
    postprocess_policy: PostprocessPolicy = PostprocessPolicy.FIRE_AND_FORGET


@dataclass(eq=False)
class DeliveryItem:
    """One pull -> send -> postprocess execution of a configured job.

    The item registers itself with the queue registry on construction and
    releases itself exactly once, in the same step that moves it into a
    terminal state. ``state`` is the only authoritative lifecycle field;
    ``status`` and ``is_active`` are projections of it.
    """

    name: str
    pull_query: str
    deps: DeliveryDeps = field(repr=False)
    postprocess_query: str | None = None
    id: str = field(default_factory=new_delivery_id)
    state: DeliveryState = DeliveryState.PENDING
    attempts: int = 0
    first_attempt_at: datetime = field(default_factory=_utcnow)
    last_attempt_at: datetime | None = None
    last_error: BaseException | None = field(default=None, repr=False)
    succeeded_at: datetime | None = None
    failed_at: datetime | None = None
    settled_at: datetime | None = None
    failure_reason: FailureReason | None = None
    postprocess_error: BaseException | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.deps.registry.register(self)
        logger.info("delivery item created", extra=self._log_context())

    @property
    def retry_limit(self) -> int:
        return self.deps.endpoint_settings.retry.limit

    @property
    def is_active(self) -> bool:
        return not is_terminal(self.state) and self.attempts <= self.retry_limit

    @property
    def status(self) -> DeliveryStatus:
        if self.attempts > self.retry_limit:
            return DeliveryStatus.FAILURE
        return STATE_TO_STATUS[self.state]

    @property
    def start_time(self) -> datetime:
        if self.succeeded_at is not None and self.last_attempt_at is not None:
            return self.last_attempt_at
        return self.first_attempt_at

    @property
    def end_time(self) -> datetime | None:
        return self.succeeded_at or self.failed_at or self.settled_at

    @property
    def duration_ms(self) -> int:
        end = self.end_time or _utcnow()
        return int((end - self.start_time).total_seconds() * 1000)

    @property
    def brief(self) -> DeliveryBrief:
        return DeliveryBrief(
            name=self.name,
            status=self.status,
            duration_ms=self.duration_ms,
            start=self.start_time,
            end=self.end_time,
            retries=self.attempts,
        )

    async def pull(self) -> DeliveryOutcome:
        self._transition(DeliveryState.PULLING)
        self.last_attempt_at = _utcnow()
        try:
            rows = await self.deps.data_source.execute(self.pull_query)
        except Exception as exc:
            self._settle(DeliveryState.FAILED, reason="pull_failure", error=exc)
            logger.error(
                "delivery pull failed",
                extra=self._log_context(reason="pull_failure", error=repr(exc)),
            )
            raise DeliveryFailure(reason="pull_failure", error=exc, item=self) from exc

        logger.info("delivery pull succeeded", extra=self._log_context(rows=len(rows)))
        if not rows:
            self._settle(DeliveryState.EMPTY)
            logger.info("delivery skipped send phase: empty row-set", extra=self._log_context())
            return DeliveryOutcome(reason="empty", item_id=self.id)
        return await self.send(rows)

    async def send(self, rows: list[Row]) -> DeliveryOutcome:
        self._transition(DeliveryState.SENDING)
        self.last_attempt_at = _utcnow()
        try:
            request = build_delivery_request(self.deps.endpoint_settings, rows)
        except Exception as exc:
            self._settle(DeliveryState.FAILED, reason="construction_fault", error=exc)
            logger.error(
                "delivery request construction failed",
                extra=self._log_context(reason="construction_fault", error=repr(exc)),
            )
            raise DeliveryFailure(reason="construction_fault", error=exc, item=self) from exc

        while True:
            try:
                response = await self.deps.endpoint.send(request)
                break
            except Exception as exc:
                self.last_error = exc
                if self.attempts >= self.retry_limit:
                    self._settle(DeliveryState.FAILED, reason="send_giveup", error=exc)
                    logger.error(
                        "delivery send gave up",
                        extra=self._log_context(reason="send_giveup", error=repr(exc)),
                    )
                    raise DeliveryFailure(reason="send_giveup", error=exc, item=self) from exc

                self.attempts += 1
                self._transition(DeliveryState.RETRY_WAITING)
                logger.warning(
                    "delivery send failed, retry scheduled",
                    extra=self._log_context(reason="send_failure", error=repr(exc)),
                )
                await asyncio.sleep(self.deps.endpoint_settings.retry.interval_seconds)
                self._transition(DeliveryState.SENDING)
                self.last_attempt_at = _utcnow()

        self._settle(DeliveryState.SUCCEEDED)
        logger.info(
            "delivery sent",
            extra=self._log_context(
                rows=len(rows),
                http_status=response.status_code,
                elapsed_ms=response.elapsed_ms,
            ),
        )
        await self.postprocess()
        return DeliveryOutcome(reason="success", item_id=self.id, rows_sent=len(rows))

    async def postprocess(self) -> None:
        """Run the configured postprocess query after a successful send.

        The outcome never changes the item's state: under the default
        fire-and-forget policy a failure is only logged and kept on
        ``postprocess_error``.
        """
        if not self.postprocess_query:
            return
        try:
            await self.deps.data_source.execute(self.postprocess_query)
        except Exception as exc:
            self.postprocess_error = exc
            logger.warning(
                "delivery postprocess failed",
                extra=self._log_context(
                    reason="postprocess_failure",
                    error=repr(exc),
                    policy=self.deps.postprocess_policy.value,
                ),
            )
            if self.deps.postprocess_policy is PostprocessPolicy.SURFACE:
                raise DeliveryFailure(reason="postprocess_failure", error=exc, item=self) from exc
            return
        logger.info("delivery postprocess completed", extra=self._log_context())

    def _transition(self, to_state: DeliveryState) -> None:
        if to_state not in ALLOWED_TRANSITIONS[self.state]:
            raise DomainInvariantError(
                f"invalid delivery transition {self.state.value} -> {to_state.value} for {self.id}"
            )
        self.state = to_state

    def _settle(
        self,
        to_state: DeliveryState,
        *,
        reason: FailureReason | None = None,
        error: BaseException | None = None,
    ) -> None:
        self._transition(to_state)
        now = _utcnow()
        if to_state is DeliveryState.SUCCEEDED:
            self.succeeded_at = now
        elif to_state is DeliveryState.FAILED:
            self.failed_at = now
            self.failure_reason = reason
        if error is not None:
            self.last_error = error
        self.settled_at = now
        self.deps.registry.release(self)

    def _log_context(self, **extra: object) -> dict[str, object]:
        context: dict[str, object] = {
            "job": self.name,
            "item_id": self.id,
            "state": self.state.value,
            "attempts": self.attempts,
            "retry_limit": self.retry_limit,
            "duration_ms": self.duration_ms,
        }
        context.update(extra)
        reason = extra.get("reason")
        if reason is not None:
            context["retry_class"] = classify_failure(reason)
        return context
