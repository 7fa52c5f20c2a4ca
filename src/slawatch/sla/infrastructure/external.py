"""
SLA Scheduling Integration
===========================

APScheduler-driven poller for background SLA breach detection.
"""

import asyncio
import uuid
from datetime import datetime
from typing import Callable, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from slawatch.config import PollerState, settings
from slawatch.shared.infrastructure.logging import get_logger, log_latency
from slawatch.sla.application import SLABreachService, TickSummary
from slawatch.sla.domain import utc_now

logger = get_logger(__name__)

JOB_ID = "sla_breach_poll"


class SLAPoller:
    """
    Owns the polling timer for the SLA breach service.

    The interval job fires on wall-clock time whether or not the previous
    tick has finished; overlapping ticks are bounded by `max_overlapping_ticks`
    and kept correct by the repository's conditional write. `tick()` can also
    be driven directly with an injected clock.
    """

    def __init__(
        self,
        service: SLABreachService,
        interval_ms: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
        max_overlapping_ticks: Optional[int] = None,
        tick_timeout_seconds: Optional[float] = None,
        shutdown_timeout_seconds: Optional[float] = None
    ):
        self._service = service
        self._interval_ms = interval_ms or settings.sla_poll_ms
        self._clock = clock
        self._max_overlapping_ticks = max_overlapping_ticks or settings.sla_max_overlapping_ticks
        self._tick_timeout_seconds = tick_timeout_seconds
        self._shutdown_timeout_seconds = (
            settings.sla_shutdown_timeout_seconds
            if shutdown_timeout_seconds is None else shutdown_timeout_seconds
        )
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._state = PollerState.STOPPED
        self._inflight: Set[asyncio.Task] = set()
        self._last_summary: Optional[TickSummary] = None

    async def start(self) -> None:
        """Arm the interval timer. Starting a running poller does nothing."""
        if self._state == PollerState.RUNNING:
            logger.warning("SLA poller already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._run_scheduled_tick,
            "interval",
            seconds=self._interval_ms / 1000,
            id=JOB_ID,
            name="SLA Breach Poll",
            max_instances=self._max_overlapping_ticks,
            coalesce=False,
            replace_existing=True
        )
        self._scheduler.start()
        self._state = PollerState.RUNNING

        logger.info(
            "SLA poller started",
            extra={"interval_ms": self._interval_ms}
        )

    async def stop(self) -> None:
        """Disarm the timer and let in-flight ticks finish (bounded wait)."""
        if self._state != PollerState.RUNNING:
            return

        # Jobs already handed to the executor see this and do not start a tick
        self._state = PollerState.STOPPED
        if self._scheduler:
            self._scheduler.remove_job(JOB_ID)
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        if self._inflight:
            _, pending = await asyncio.wait(
                set(self._inflight),
                timeout=self._shutdown_timeout_seconds
            )
            if pending:
                logger.warning(
                    "SLA ticks still running at shutdown",
                    extra={"pending_ticks": len(pending)}
                )

        logger.info("SLA poller stopped")

    async def tick(self) -> TickSummary:
        """
        Run one poll now.

        Never raises: a failed or timed-out tick is logged and returned as a
        summary with `error` set, so the schedule carries on.
        """
        now = self._clock()
        tick_id = uuid.uuid4().hex[:12]

        try:
            with log_latency(logger, "sla_tick", tick_id=tick_id):
                run = self._service.run_tick(now, tick_id=tick_id)
                if self._tick_timeout_seconds:
                    summary = await asyncio.wait_for(run, timeout=self._tick_timeout_seconds)
                else:
                    summary = await run
        except asyncio.TimeoutError:
            logger.error(
                "SLA tick timed out",
                extra={"tick_id": tick_id, "timeout_seconds": self._tick_timeout_seconds}
            )
            summary = TickSummary(tick_id=tick_id, started_at=now, error="tick timed out")
        except Exception as e:
            logger.exception("SLA tick failed", extra={"tick_id": tick_id})
            summary = TickSummary(tick_id=tick_id, started_at=now, error=str(e))

        summary.finished_at = self._clock()
        self._last_summary = summary
        return summary

    async def _run_scheduled_tick(self) -> None:
        if self._state != PollerState.RUNNING:
            return

        # The scheduler cancels its running jobs on shutdown; the tick runs
        # in its own task so stop() can let it finish instead.
        task = asyncio.ensure_future(self.tick())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        await asyncio.shield(task)

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if the poller timer is armed."""
        return self._state == PollerState.RUNNING

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def inflight_ticks(self) -> int:
        return len(self._inflight)

    @property
    def last_summary(self) -> Optional[TickSummary]:
        return self._last_summary
