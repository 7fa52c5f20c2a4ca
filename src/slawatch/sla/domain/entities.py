"""
SLA Domain Entities
====================

Pure Python domain entities for SLA tracking.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from slawatch.config import TrackerStatus, TicketHistoryStatus


@dataclass
class SlaTracker:
    """
    One active service-level commitment for a ticket.

    trackers are created `running` by the ticketing side. This engine only
    ever moves them `running -> breached`; `paused` and `completed` belong to
    other collaborators.
    """

    id: int
    ticket_id: str
    sla_name: str
    status: str
    breach_time: Optional[datetime] = None

    # Stored by the ticketing side, never consulted for deadline math
    business_hours: bool = False

    @property
    def is_running(self) -> bool:
        return self.status == TrackerStatus.RUNNING


@dataclass(frozen=True)
class TicketStatusHistoryEntry:
    """Append-only audit record on a ticket."""

    ticket_id: str
    old_status: str
    new_status: str
    changed_at: datetime

    @classmethod
    def sla_breached(cls, ticket_id: str, changed_at: datetime) -> "TicketStatusHistoryEntry":
        """
        Entry written when a tracker breaches.

        The prior status is always recorded as 'open'; the ticket's real
        status is not read at breach time.
        """
        return cls(
            ticket_id=ticket_id,
            old_status=TicketHistoryStatus.OPEN,
            new_status=TicketHistoryStatus.SLA_BREACHED,
            changed_at=changed_at,
        )
