"""
SLA Value Objects
==================

Immutable value objects and stateless domain services for SLA tracking.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from slawatch.config import BreachState


def utc_now() -> datetime:
    """Default clock for the poller."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class BreachClassification:
    """
    Result of checking one deadline against a point in time.

    `remaining` is set for OK, `overdue_by` for BREACHED, neither for NO_SLA.
    """
    state: str
    remaining: Optional[timedelta] = None
    overdue_by: Optional[timedelta] = None

    @property
    def is_breached(self) -> bool:
        return self.state == BreachState.BREACHED

    @classmethod
    def no_sla(cls) -> "BreachClassification":
        return cls(state=BreachState.NO_SLA)

    @classmethod
    def ok(cls, remaining: timedelta) -> "BreachClassification":
        return cls(state=BreachState.OK, remaining=remaining)

    @classmethod
    def breached(cls, overdue_by: timedelta) -> "BreachClassification":
        return cls(state=BreachState.BREACHED, overdue_by=overdue_by)


class BreachDetector:
    """
    Pure functions for breach detection.

    Deadlines are absolute wall-clock instants. A tracker's business-hours
    flag does not change the comparison.
    """

    @staticmethod
    def classify(now: datetime, breach_time: Optional[datetime]) -> BreachClassification:
        """
        Classify a deadline relative to `now`.

        Args:
            now: Evaluation instant (captured once per tick)
            breach_time: Absolute deadline, or None when the tracker has none

        Returns:
            BreachClassification: NO_SLA, OK(remaining) or BREACHED(overdue_by)

        Only a strictly later `now` is a breach; `now == breach_time` is OK.
        """
        if breach_time is None:
            return BreachClassification.no_sla()

        now = ensure_utc(now)
        breach_time = ensure_utc(breach_time)

        if now > breach_time:
            return BreachClassification.breached(now - breach_time)
        return BreachClassification.ok(breach_time - now)
