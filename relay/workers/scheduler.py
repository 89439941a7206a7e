from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging

from relay.config import JobConfig
from relay.delivery.queue import DeliveryQueue


@dataclass
class JobSchedulerState:
    started: bool = False
    stopped: bool = False
    ticks_total: dict[str, int] = field(default_factory=dict)
    dispatched_total: int = 0
    skipped_total: int = 0


async def run_job_until_stopped(
    *,
    job: JobConfig,
    queue: DeliveryQueue,
    stop_event: asyncio.Event,
    logger: logging.Logger,
    state: JobSchedulerState | None = None,
) -> None:
    """Fire ``job`` every ``interval_ms`` until ``stop_event`` is set.

    Firings never wait for the previous item, so items of one job may overlap.
    """
    interval_seconds = job.interval_ms / 1000
    logger.info("job schedule started", extra={"job": job.name, "interval_ms": job.interval_ms})

    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            break
        except TimeoutError:
            pass

        item = queue.dispatch(job.name, job.pull_query, job.postprocess_query)
        if state is not None:
            state.ticks_total[job.name] = state.ticks_total.get(job.name, 0) + 1
            if item is None:
                state.skipped_total += 1
            else:
                state.dispatched_total += 1

    logger.info("job schedule stopped", extra={"job": job.name})


@dataclass
class JobScheduler:
    jobs: tuple[JobConfig, ...]
    queue: DeliveryQueue
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("relay"))
    state: JobSchedulerState = field(default_factory=JobSchedulerState)
    _stop_event: asyncio.Event | None = field(default=None, repr=False)
    _tasks: list[asyncio.Task[None]] = field(default_factory=list, repr=False)

    @property
    def running(self) -> bool:
        return bool(self._tasks) and not all(task.done() for task in self._tasks)

    def start(self) -> None:
        if self._stop_event is not None:
            return
        self._stop_event = asyncio.Event()
        for job in self.jobs:
            self._tasks.append(
                asyncio.create_task(
                    run_job_until_stopped(
                        job=job,
                        queue=self.queue,
                        stop_event=self._stop_event,
                        logger=self.logger,
                        state=self.state,
                    ),
                    name=f"job:{job.name}",
                )
            )
        self.state.started = True

    async def stop(self) -> None:
        if self._stop_event is None:
            return
        self._stop_event.set()
        await asyncio.gather(*self._tasks)
        self.state.stopped = True
