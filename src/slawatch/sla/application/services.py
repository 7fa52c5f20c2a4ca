"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: the breach service runs one tick; scheduling lives
  in the infrastructure poller
- Dependency Inversion: depend on the repository abstraction and the
  notification dispatcher, not on SQLAlchemy or transports
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from slawatch.config import settings
from slawatch.core import RepositoryException
from slawatch.notifications.application import NotificationDispatcher
from slawatch.shared.infrastructure.logging import get_tick_logger
from slawatch.sla.application.dto import TickSummary
from slawatch.sla.domain import (
    BreachClassification,
    BreachDetector,
    SlaTracker,
    TicketStatusHistoryEntry,
    ensure_utc,
)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISlaTrackerRepository(ABC):
    """Interface for SLA tracker and ticket history data access."""

    @abstractmethod
    async def list_running(self) -> Sequence[SlaTracker]:
        """All trackers currently in 'running' status, in no particular order."""

    @abstractmethod
    async def mark_breached(self, tracker_id: int) -> bool:
        """
        Move a tracker running -> breached.

        Returns True only if the tracker was still running at write time;
        False when another process already moved it.
        """

    @abstractmethod
    async def append_history(
        self,
        ticket_id: str,
        old_status: str,
        new_status: str,
        changed_at: datetime
    ) -> None:
        """Append a ticket status history row, committed independently."""

    @abstractmethod
    async def get(self, tracker_id: int) -> Optional[SlaTracker]:
        """Get a tracker by ID."""


# ========== Application Services ==========

class SLABreachService:
    """
    Runs one poll over every running tracker.

    Per breached tracker, in order: conditional transition, history entry,
    notification. A tracker whose transition is lost to another poller is
    skipped entirely. Trackers are isolated from each other's failures.
    """

    def __init__(
        self,
        repository: ISlaTrackerRepository,
        dispatcher: NotificationDispatcher,
        ops_recipient: Optional[str] = None,
        app_url: Optional[str] = None,
        email_template: Optional[str] = None,
        teams_webhook_url: Optional[str] = None,
        teams_template: Optional[str] = None,
        concurrency: int = 1
    ):
        self._repository = repository
        self._dispatcher = dispatcher
        self._ops_recipient = ops_recipient or settings.sla_ops_recipient
        self._app_url = app_url or settings.app_url
        self._email_template = email_template or settings.sla_breach_email_template
        self._teams_webhook_url = teams_webhook_url
        self._teams_template = teams_template or settings.sla_breach_teams_template
        self._concurrency = max(1, concurrency)

    async def run_tick(self, now: datetime, tick_id: Optional[str] = None) -> TickSummary:
        """
        Evaluate all running trackers against `now`.

        Never raises for repository, template or delivery failures; they are
        logged and reflected in the returned summary.
        """
        summary = TickSummary(tick_id=tick_id or uuid.uuid4().hex[:12], started_at=now)
        logger = get_tick_logger(__name__, summary.tick_id)

        try:
            trackers = await self._repository.list_running()
        except RepositoryException as e:
            logger.error("Failed to list running SLA trackers", extra={"error": e.message})
            summary.error = e.message
            return summary

        summary.trackers_evaluated = len(trackers)
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _guarded(tracker: SlaTracker) -> None:
            async with semaphore:
                try:
                    await self._process_tracker(tracker, now, summary, logger)
                except Exception:
                    summary.tracker_errors += 1
                    logger.exception(
                        "SLA tracker processing failed",
                        extra={"tracker_id": tracker.id, "ticket_id": tracker.ticket_id}
                    )

        await asyncio.gather(*(_guarded(tracker) for tracker in trackers))

        if summary.breaches_detected:
            logger.info(
                "SLA breaches processed",
                extra={
                    "breaches_detected": summary.breaches_detected,
                    "transitions_won": summary.transitions_won,
                    "transitions_lost": summary.transitions_lost,
                    "notifications_sent": summary.notifications_sent,
                    "notification_failures": summary.notification_failures,
                }
            )
        return summary

    async def _process_tracker(
        self,
        tracker: SlaTracker,
        now: datetime,
        summary: TickSummary,
        logger: Any
    ) -> None:
        classification = BreachDetector.classify(now, tracker.breach_time)
        if not classification.is_breached:
            return

        summary.breaches_detected += 1

        if not await self._repository.mark_breached(tracker.id):
            summary.transitions_lost += 1
            logger.info(
                "SLA tracker already transitioned elsewhere, skipping",
                extra={"tracker_id": tracker.id, "ticket_id": tracker.ticket_id}
            )
            return

        summary.transitions_won += 1
        logger.warning(
            "SLA breached",
            extra={
                "tracker_id": tracker.id,
                "ticket_id": tracker.ticket_id,
                "sla_name": tracker.sla_name,
                "overdue_seconds": classification.overdue_by.total_seconds(),
            }
        )

        entry = TicketStatusHistoryEntry.sla_breached(tracker.ticket_id, now)
        try:
            await self._repository.append_history(
                entry.ticket_id, entry.old_status, entry.new_status, entry.changed_at
            )
        except Exception:
            # The transition is already committed; history is best effort
            summary.history_failures += 1
            logger.exception(
                "Failed to append SLA breach history",
                extra={"tracker_id": tracker.id, "ticket_id": tracker.ticket_id}
            )

        await self._notify(tracker, summary)

    async def _notify(self, tracker: SlaTracker, summary: TickSummary) -> None:
        data = self.build_notification_data(tracker)

        sent = await self._dispatcher.send_email(
            self._ops_recipient,
            f"SLA breach: {tracker.sla_name}",
            self._email_template,
            data,
        )
        self._count(summary, sent)

        if self._teams_webhook_url:
            sent = await self._dispatcher.send_teams_webhook(
                self._teams_webhook_url,
                self._teams_template,
                data,
            )
            self._count(summary, sent)

    @staticmethod
    def _count(summary: TickSummary, sent: bool) -> None:
        if sent:
            summary.notifications_sent += 1
        else:
            summary.notification_failures += 1

    def build_notification_data(self, tracker: SlaTracker) -> Dict[str, Any]:
        """Placeholder values for the breach templates."""
        breach_time = ensure_utc(tracker.breach_time).isoformat() if tracker.breach_time else ""
        return {
            "ticketId": tracker.ticket_id,
            "slaName": tracker.sla_name,
            "breachTime": breach_time,
            "appUrl": self._app_url,
        }

    async def get_tracker(
        self,
        tracker_id: int,
        now: datetime
    ) -> Optional[Tuple[SlaTracker, Optional[BreachClassification]]]:
        """
        One tracker with its classification at `now`.

        Only running trackers are classified; the deadline of a paused,
        completed or breached tracker no longer drives escalation.
        """
        tracker = await self._repository.get(tracker_id)
        if tracker is None:
            return None
        if not tracker.is_running:
            return tracker, None
        return tracker, BreachDetector.classify(now, tracker.breach_time)

    async def classify_running(
        self,
        now: datetime
    ) -> List[Tuple[SlaTracker, BreachClassification]]:
        """Running trackers paired with their classification at `now`."""
        trackers = await self._repository.list_running()
        return [
            (tracker, BreachDetector.classify(now, tracker.breach_time))
            for tracker in trackers
        ]
