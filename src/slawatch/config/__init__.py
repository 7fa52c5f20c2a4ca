"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import Optional


DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "notifications" / "templates"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="slawatch", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/tickets",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA Poller ==========
    sla_poll_ms: int = Field(
        default=30000,
        description="Milliseconds between SLA breach polls",
        ge=1
    )
    sla_poller_enabled: bool = Field(
        default=True,
        description="Start the SLA poller with the application"
    )
    sla_tick_concurrency: int = Field(
        default=1,
        description="Trackers processed concurrently within one tick",
        ge=1
    )
    sla_max_overlapping_ticks: int = Field(
        default=10,
        description="Ticks allowed to run at the same time when a tick outlives the interval",
        ge=1
    )
    sla_tick_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Upper bound on one tick's duration (unbounded when unset)",
        gt=0
    )
    sla_shutdown_timeout_seconds: float = Field(
        default=30.0,
        description="How long stop() waits for in-flight ticks",
        ge=0
    )

    # ========== Breach Notifications ==========
    app_url: str = Field(
        default="http://localhost:3000",
        description="Base application URL used in notification links"
    )
    sla_ops_recipient: str = Field(
        default="ops@example.com",
        description="Operations address receiving SLA breach emails"
    )
    sla_breach_email_template: str = Field(default="sla_breach.html")
    sla_breach_teams_template: str = Field(default="sla_breach.json")
    teams_webhook_url: Optional[str] = Field(
        default=None,
        description="Teams incoming webhook for breach alerts (disabled when unset)"
    )
    templates_dir: Path = Field(
        default=DEFAULT_TEMPLATES_DIR,
        description="Root directory holding email/ and teams/ templates"
    )

    # ========== Delivery ==========
    email_delivery: str = Field(
        default="log",
        description="Email transport: 'log' or 'smtp'"
    )
    smtp_host: str = Field(default="localhost")
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_user: Optional[str] = Field(default=None)
    smtp_password: Optional[str] = Field(default=None)
    smtp_use_tls: bool = Field(default=False, description="Implicit TLS (port 465 style)")
    smtp_from: str = Field(default="slawatch@example.com")
    webhook_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for webhook calls",
        ge=0.1,
        le=30
    )
    notification_max_attempts: int = Field(
        default=1,
        description="Delivery attempts per webhook notification (1 = no retry)",
        ge=1,
        le=10
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("email_delivery")
    @classmethod
    def validate_email_delivery(cls, v: str) -> str:
        allowed = {"log", "smtp"}
        if v not in allowed:
            raise ValueError(f"email_delivery must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class TrackerStatus(str):
    """SLA tracker lifecycle statuses."""
    RUNNING = "running"
    BREACHED = "breached"
    PAUSED = "paused"
    COMPLETED = "completed"


class TicketHistoryStatus(str):
    """Status values this engine writes into ticket history."""
    OPEN = "open"
    SLA_BREACHED = "sla_breached"


class BreachState(str):
    """Breach detector classifications."""
    NO_SLA = "no_sla"
    OK = "ok"
    BREACHED = "breached"


class NotificationKind(str):
    """Notification channels, also the template sub-directories."""
    EMAIL = "email"
    TEAMS = "teams"


class PollerState(str):
    """SLA poller lifecycle states."""
    STOPPED = "stopped"
    RUNNING = "running"


# ========== Lists for validation ==========

VALID_NOTIFICATION_KINDS = [NotificationKind.EMAIL, NotificationKind.TEAMS]
