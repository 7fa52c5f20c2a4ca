"""
SLA Domain Layer
================

Domain layer for SLA tracking module.

Contains:
- Entities: Core business objects with identity (SlaTracker, TicketStatusHistoryEntry)
- Value Objects: Immutable objects defined by attributes (BreachClassification)
- Domain Services: Stateless business logic (BreachDetector)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from slawatch.sla.domain.entities import SlaTracker, TicketStatusHistoryEntry
from slawatch.sla.domain.value_objects import (
    BreachDetector,
    BreachClassification,
    ensure_utc,
    utc_now,
)

__all__ = [
    # Entities
    "SlaTracker",
    "TicketStatusHistoryEntry",
    # Value Objects & Services
    "BreachDetector",
    "BreachClassification",
    "ensure_utc",
    "utc_now",
]
