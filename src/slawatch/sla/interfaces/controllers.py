"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA tracker and poller status.

Controllers are thin - they delegate to application services.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from slawatch.sla.application import (
    SLABreachService,
    TickSummary,
    TrackerStatusResponse,
    PollerStatusResponse,
)
from slawatch.sla.domain import BreachClassification, SlaTracker, utc_now
from slawatch.sla.infrastructure import SLAPoller
from slawatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA Tracking"])


# ========== Dependencies ==========

def get_breach_service(request: Request) -> SLABreachService:
    """Get the breach service built at startup."""
    service = getattr(request.app.state, "breach_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="SLA breach service not initialized"
        )
    return service


def get_poller(request: Request) -> SLAPoller:
    """Get the SLA poller built at startup."""
    poller = getattr(request.app.state, "sla_poller", None)
    if poller is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="SLA poller not initialized"
        )
    return poller


def _to_response(
    tracker: SlaTracker,
    classification: Optional[BreachClassification]
) -> TrackerStatusResponse:
    remaining = classification.remaining if classification else None
    overdue = classification.overdue_by if classification else None
    return TrackerStatusResponse(
        id=tracker.id,
        ticket_id=tracker.ticket_id,
        sla_name=tracker.sla_name,
        status=tracker.status,
        breach_time=tracker.breach_time,
        business_hours=tracker.business_hours,
        state=classification.state if classification else None,
        remaining_seconds=remaining.total_seconds() if remaining is not None else None,
        overdue_seconds=overdue.total_seconds() if overdue is not None else None,
    )


# ========== Routes ==========

@router.get(
    "/trackers",
    response_model=List[TrackerStatusResponse],
    summary="List running SLA trackers"
)
async def list_running_trackers(
    service: SLABreachService = Depends(get_breach_service)
) -> List[TrackerStatusResponse]:
    """
    Running trackers with their breach classification right now.

    Read-only: classification here never transitions a tracker.
    """
    rows = await service.classify_running(utc_now())
    return [_to_response(tracker, classification) for tracker, classification in rows]


@router.get(
    "/trackers/{tracker_id}",
    response_model=TrackerStatusResponse,
    summary="Get one SLA tracker",
    responses={404: {"description": "Tracker not found"}}
)
async def get_tracker(
    tracker_id: int,
    service: SLABreachService = Depends(get_breach_service)
) -> TrackerStatusResponse:
    """Any tracker by ID; breach state is only reported while it is running."""
    found = await service.get_tracker(tracker_id, utc_now())
    if found is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"SLA tracker {tracker_id} not found"
        )
    return _to_response(*found)


@router.get("/poller", response_model=PollerStatusResponse, summary="SLA poller status")
async def poller_status(poller: SLAPoller = Depends(get_poller)) -> PollerStatusResponse:
    return PollerStatusResponse(
        state=poller.state,
        interval_ms=poller.interval_ms,
        inflight_ticks=poller.inflight_ticks,
        last_summary=poller.last_summary,
    )


@router.post("/poller/tick", response_model=TickSummary, summary="Run one SLA poll now")
async def run_tick_now(poller: SLAPoller = Depends(get_poller)) -> TickSummary:
    """Run a tick immediately, outside the timer."""
    summary = await poller.tick()
    logger.info(
        "Manual SLA tick finished",
        extra={"tick_id": summary.tick_id, "breaches_detected": summary.breaches_detected}
    )
    return summary


sla_router = router
