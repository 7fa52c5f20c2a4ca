"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA tracking:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer with conditional state transitions
- External: APScheduler-driven poller
"""

from slawatch.sla.infrastructure.models import SlaTrackerModel, TicketStatusHistoryModel
from slawatch.sla.infrastructure.repositories import SQLAlchemySlaTrackerRepository
from slawatch.sla.infrastructure.external import SLAPoller

__all__ = [
    "SlaTrackerModel",
    "TicketStatusHistoryModel",
    "SQLAlchemySlaTrackerRepository",
    "SLAPoller",
]
