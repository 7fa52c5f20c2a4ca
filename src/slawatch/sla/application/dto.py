"""
SLA Application DTOs
=====================

Data Transfer Objects for the SLA poller and its API.

These Pydantic models carry tick results and tracker status out of the
application layer. Following YAGNI - only what's needed.
"""

from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


# ========== Type Aliases for Literals ==========
TrackerStatusStr = Literal["running", "breached", "paused", "completed"]
BreachStateStr = Literal["no_sla", "ok", "breached"]
PollerStateStr = Literal["stopped", "running"]


# ========== Tick Results ==========

class TickSummary(BaseModel):
    """Counters for one poll over all running trackers."""
    tick_id: str = Field(..., description="Identifier stamped on this tick's log lines")
    started_at: datetime = Field(..., description="The tick's captured 'now'")
    finished_at: Optional[datetime] = None

    trackers_evaluated: int = 0
    breaches_detected: int = Field(default=0, description="Trackers classified BREACHED")
    transitions_won: int = Field(default=0, description="Conditional writes that succeeded")
    transitions_lost: int = Field(default=0, description="Trackers already moved by another poller")
    history_failures: int = 0
    notifications_sent: int = 0
    notification_failures: int = 0
    tracker_errors: int = Field(default=0, description="Trackers whose processing raised")

    error: Optional[str] = Field(default=None, description="Set when the whole tick failed")

    @property
    def succeeded(self) -> bool:
        return self.error is None


# ========== Response DTOs ==========

class TrackerStatusResponse(BaseModel):
    """A tracker with its current breach classification."""
    id: int
    ticket_id: str
    sla_name: str
    status: TrackerStatusStr
    breach_time: Optional[datetime] = None
    business_hours: bool = False
    state: Optional[BreachStateStr] = Field(default=None, description="Unset for trackers that are not running")
    remaining_seconds: Optional[float] = None
    overdue_seconds: Optional[float] = None


class PollerStatusResponse(BaseModel):
    """SLA poller lifecycle information."""
    state: PollerStateStr
    interval_ms: int
    inflight_ticks: int = 0
    last_summary: Optional[TickSummary] = None
