"""
SLA Application Layer
======================

Application layer for SLA tracking module.

Contains:
- Services: Per-tick breach processing
- DTOs: Tick summaries and API responses

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from slawatch.sla.application.dto import (
    TickSummary,
    TrackerStatusResponse,
    PollerStatusResponse,
)
from slawatch.sla.application.services import (
    SLABreachService,
    ISlaTrackerRepository,
)

__all__ = [
    # DTOs
    "TickSummary",
    "TrackerStatusResponse",
    "PollerStatusResponse",
    # Services
    "SLABreachService",
    # Repository Interfaces
    "ISlaTrackerRepository",
]
