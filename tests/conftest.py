"""
slawatch test fixtures

SQLite (file-backed, per test) async database, recording delivery channels
and a controllable clock. No PostgreSQL, SMTP or network access is needed.
"""
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List, Optional

# Must be set before slawatch.config builds its settings
os.environ["ENVIRONMENT"] = "test"
os.environ["SLA_POLLER_ENABLED"] = "false"
os.environ["EMAIL_DELIVERY"] = "log"

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from slawatch.config import NotificationKind, TrackerStatus
from slawatch.core import DeliveryException
from slawatch.infrastructure.database import build_session_factory, create_tables
from slawatch.notifications.application import IDeliveryChannel, NotificationDispatcher, TemplateRenderer
from slawatch.notifications.domain import RenderedNotification
from slawatch.notifications.infrastructure import FileTemplateStore
from slawatch.sla.application import SLABreachService
from slawatch.sla.infrastructure import (
    SlaTrackerModel,
    SQLAlchemySlaTrackerRepository,
    TicketStatusHistoryModel,
)


NOW = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingChannel(IDeliveryChannel):
    """Delivery channel that records notifications instead of sending them."""

    def __init__(self, fail_first: int = 0, accept: bool = True):
        self.sent: List[RenderedNotification] = []
        self.attempts = 0
        self._fail_first = fail_first
        self._accept = accept
        self.closed = False

    async def deliver(self, notification: RenderedNotification) -> bool:
        self.attempts += 1
        if self.attempts <= self._fail_first:
            raise DeliveryException(notification.kind, "simulated outage")
        if self._accept:
            self.sent.append(notification)
        return self._accept

    async def close(self) -> None:
        self.closed = True


# ── Database ──────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """A fresh SQLite database file with all tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'slawatch.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def repository(session_factory) -> SQLAlchemySlaTrackerRepository:
    return SQLAlchemySlaTrackerRepository(session_factory)


@pytest.fixture
def add_tracker(session_factory):
    """Insert a tracker row and return its id."""

    async def _add(
        ticket_id: str = "T-1",
        sla_name: str = "Response Time",
        status: str = TrackerStatus.RUNNING,
        breach_time: Optional[datetime] = None,
        business_hours: bool = False,
    ) -> int:
        async with session_factory() as session:
            model = SlaTrackerModel(
                ticket_id=ticket_id,
                sla_name=sla_name,
                status=status,
                breach_time=breach_time,
                business_hours=business_hours,
            )
            session.add(model)
            await session.commit()
            return model.id

    return _add


@pytest.fixture
def tracker_status(session_factory):
    async def _status(tracker_id: int) -> str:
        async with session_factory() as session:
            model = await session.get(SlaTrackerModel, tracker_id)
            return model.status

    return _status


@pytest.fixture
def history_rows(session_factory):
    async def _rows(ticket_id: Optional[str] = None) -> List[TicketStatusHistoryModel]:
        stmt = select(TicketStatusHistoryModel)
        if ticket_id is not None:
            stmt = stmt.where(TicketStatusHistoryModel.ticket_id == ticket_id)
        async with session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    return _rows


# ── Notifications ─────────────────────────────────────────────────────

@pytest.fixture
def email_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def teams_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def dispatcher(email_channel, teams_channel) -> NotificationDispatcher:
    """Dispatcher over the packaged templates and recording channels."""
    return NotificationDispatcher(
        TemplateRenderer(FileTemplateStore()),
        {NotificationKind.EMAIL: email_channel, NotificationKind.TEAMS: teams_channel},
    )


@pytest.fixture
def breach_service(repository, dispatcher) -> SLABreachService:
    return SLABreachService(
        repository=repository,
        dispatcher=dispatcher,
        ops_recipient="ops@example.com",
        app_url="http://localhost:3000",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
