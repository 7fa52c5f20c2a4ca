"""
slawatch - Main Application
===========================

SLA breach tracking service for the IT service desk.

Modules:
- SLA Tracking: Poll running SLA trackers and escalate breaches
- Notifications: Render templates and deliver email / Teams messages

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, scheduler, delivery transports
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from slawatch.config import Settings, settings
from slawatch.core import ApplicationException, RepositoryException

from slawatch.infrastructure.database import (
    init_database, close_database, create_tables, get_session_factory
)

from slawatch.notifications.application import NotificationDispatcher, TemplateRenderer
from slawatch.notifications.infrastructure import FileTemplateStore, build_delivery_channels

from slawatch.sla.application import SLABreachService
from slawatch.sla.infrastructure import SLAPoller, SQLAlchemySlaTrackerRepository
from slawatch.sla.interfaces import sla_router

from slawatch.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


def build_sla_components(
    session_factory: async_sessionmaker[AsyncSession],
    config: Optional[Settings] = None
) -> Tuple[SLABreachService, SLAPoller, NotificationDispatcher]:
    """Wire repository, renderer, dispatcher, breach service and poller."""
    config = config or settings

    dispatcher = NotificationDispatcher(
        TemplateRenderer(FileTemplateStore(config.templates_dir)),
        build_delivery_channels(config),
    )
    service = SLABreachService(
        repository=SQLAlchemySlaTrackerRepository(session_factory),
        dispatcher=dispatcher,
        ops_recipient=config.sla_ops_recipient,
        app_url=config.app_url,
        email_template=config.sla_breach_email_template,
        teams_webhook_url=config.teams_webhook_url,
        teams_template=config.sla_breach_teams_template,
        concurrency=config.sla_tick_concurrency,
    )
    poller = SLAPoller(
        service,
        interval_ms=config.sla_poll_ms,
        max_overlapping_ticks=config.sla_max_overlapping_ticks,
        tick_timeout_seconds=config.sla_tick_timeout_seconds,
        shutdown_timeout_seconds=config.sla_shutdown_timeout_seconds,
    )
    return service, poller, dispatcher


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables
    4. Build SLA components
    5. Start SLA poller

    SHUTDOWN:
    1. Stop SLA poller (in-flight ticks finish)
    2. Close delivery channels
    3. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting slawatch", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Development convenience - production schemas are owned by the ticketing side
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    service, poller, dispatcher = build_sla_components(get_session_factory())
    app.state.breach_service = service
    app.state.sla_poller = poller

    if settings.sla_poller_enabled:
        await poller.start()
    else:
        logger.info("SLA poller disabled by configuration")

    logger.info("slawatch started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down slawatch")

    await poller.stop()
    await dispatcher.close()
    await close_database()

    logger.info("slawatch shutdown complete")


app = FastAPI(
    title="slawatch",
    description="SLA breach tracking and notification service.",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


@app.exception_handler(ApplicationException)
async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """Map application errors to JSON responses."""
    status_code = 503 if isinstance(exc, RepositoryException) else 500
    logger.error(
        "Request failed",
        extra={"path": request.url.path, "error": exc.message, "error_type": type(exc).__name__}
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": exc.message}
    )


app.include_router(sla_router)


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports whether the SLA poller timer is armed.
    """
    poller = getattr(request.app.state, "sla_poller", None)
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": {
            "sla_poller": poller.state if poller else "not_initialized",
        }
    }


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run(
        "slawatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )


if __name__ == "__main__":
    run()
