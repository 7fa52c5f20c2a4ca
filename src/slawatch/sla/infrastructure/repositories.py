"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from slawatch.config import TrackerStatus
from slawatch.core import RepositoryException
from slawatch.sla.application import ISlaTrackerRepository
from slawatch.sla.domain import SlaTracker
from slawatch.sla.infrastructure.models import SlaTrackerModel, TicketStatusHistoryModel


class SQLAlchemySlaTrackerRepository(ISlaTrackerRepository):
    """
    SQLAlchemy implementation of the SLA tracker repository.

    Every call runs in its own session and transaction, so a committed
    transition is never rolled back by a later history failure.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _to_domain(model: SlaTrackerModel) -> SlaTracker:
        return SlaTracker(
            id=model.id,
            ticket_id=model.ticket_id,
            sla_name=model.sla_name,
            status=model.status,
            breach_time=model.breach_time,
            business_hours=model.business_hours,
        )

    async def list_running(self) -> List[SlaTracker]:
        """List trackers in 'running' status."""
        stmt = select(SlaTrackerModel).where(SlaTrackerModel.status == TrackerStatus.RUNNING)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [self._to_domain(model) for model in result.scalars().all()]
        except SQLAlchemyError as e:
            raise RepositoryException("Failed to list running SLA trackers", {"error": str(e)}) from e

    async def mark_breached(self, tracker_id: int) -> bool:
        """
        Conditional running -> breached update.

        The status predicate in the WHERE clause is the compare-and-swap:
        of several concurrent callers only one can match the row.
        """
        stmt = (
            update(SlaTrackerModel)
            .where(
                SlaTrackerModel.id == tracker_id,
                SlaTrackerModel.status == TrackerStatus.RUNNING,
            )
            .values(status=TrackerStatus.BREACHED, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
                return result.rowcount == 1
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to mark SLA tracker {tracker_id} breached",
                {"tracker_id": tracker_id, "error": str(e)}
            ) from e

    async def append_history(
        self,
        ticket_id: str,
        old_status: str,
        new_status: str,
        changed_at: datetime
    ) -> None:
        """Append one ticket status history row."""
        model = TicketStatusHistoryModel(
            ticket_id=ticket_id,
            old_status=old_status,
            new_status=new_status,
            changed_at=changed_at,
        )
        try:
            async with self._session_factory() as session:
                session.add(model)
                await session.commit()
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to append history for ticket {ticket_id}",
                {"ticket_id": ticket_id, "error": str(e)}
            ) from e

    async def get(self, tracker_id: int) -> Optional[SlaTracker]:
        """Get tracker by ID."""
        try:
            async with self._session_factory() as session:
                model = await session.get(SlaTrackerModel, tracker_id)
                return self._to_domain(model) if model else None
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to load SLA tracker {tracker_id}",
                {"tracker_id": tracker_id, "error": str(e)}
            ) from e
