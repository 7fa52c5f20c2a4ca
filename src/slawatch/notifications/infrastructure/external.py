"""
Notification Delivery Integrations
===================================

Delivery channels for rendered notifications:
- Log-only delivery (default for email)
- SMTP email via aiosmtplib
- Microsoft Teams incoming webhook via httpx
"""

import asyncio
import json
import time
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Callable, Dict, Optional

import aiosmtplib
import httpx

from slawatch.config import NotificationKind, Settings, settings as default_settings
from slawatch.core import ConfigurationException, DeliveryException
from slawatch.notifications.application import IDeliveryChannel
from slawatch.notifications.domain import RenderedNotification
from slawatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class LoggingDelivery(IDeliveryChannel):
    """
    Writes the notification to the log instead of sending it.

    Used when no real transport is configured; always reports success.
    """

    async def deliver(self, notification: RenderedNotification) -> bool:
        logger.info(
            "Notification rendered",
            extra={
                "kind": notification.kind,
                "destination": notification.destination,
                "subject": notification.subject,
                "body_preview": notification.preview(),
            }
        )
        return True


class SmtpEmailDelivery(IDeliveryChannel):
    """HTML email delivery over SMTP."""

    def __init__(
        self,
        hostname: str,
        port: int,
        sender: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = False,
        timeout: float = 10.0
    ):
        self._hostname = hostname
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    def _build_message(self, notification: RenderedNotification) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = notification.subject or ""
        msg["From"] = self._sender
        msg["To"] = notification.destination
        msg.attach(MIMEText(notification.body, "html", "utf-8"))
        return msg

    async def deliver(self, notification: RenderedNotification) -> bool:
        message = self._build_message(notification)
        kwargs: Dict[str, Any] = {
            "hostname": self._hostname,
            "port": self._port,
            "use_tls": self._use_tls,
            "timeout": self._timeout,
        }
        if self._username:
            kwargs["username"] = self._username
            kwargs["password"] = self._password

        try:
            await aiosmtplib.send(message, **kwargs)
        except (aiosmtplib.SMTPException, OSError) as e:
            raise DeliveryException(
                "email",
                str(e),
                {"destination": notification.destination}
            ) from e

        logger.info(
            "Email sent",
            extra={"destination": notification.destination, "subject": notification.subject}
        )
        return True


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if self._clock() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = self._clock()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class TeamsWebhookDelivery(IDeliveryChannel):
    """
    Teams incoming-webhook client with circuit breaker.

    `max_attempts=1` sends once. Higher values retry with exponential
    backoff (1s, 2s, 4s, ...).
    """

    def __init__(
        self,
        timeout_seconds: float = 5.0,
        max_attempts: int = 1,
        circuit_breaker: Optional[CircuitBreaker] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self._timeout_seconds = timeout_seconds
        self._max_attempts = max_attempts
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60
        )
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout_seconds)
        return self._http_client

    @staticmethod
    def _build_message(body: str) -> Dict[str, Any]:
        """Use the rendered template as a JSON object, or wrap it as text."""
        try:
            message = json.loads(body)
        except ValueError:
            return {"text": body}
        return message if isinstance(message, dict) else {"text": body}

    async def deliver(self, notification: RenderedNotification) -> bool:
        if not notification.destination:
            raise DeliveryException("teams", "webhook URL is empty")

        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping Teams notification",
                extra={"destination": notification.destination}
            )
            return False

        message = self._build_message(notification.body)

        for attempt in range(self._max_attempts):
            try:
                client = await self._get_client()
                response = await client.post(notification.destination, json=message)

                if response.is_success:
                    self._circuit_breaker.record_success()
                    logger.info("Teams notification sent", extra={"attempt": attempt + 1})
                    return True

                logger.warning(
                    "Teams webhook returned non-2xx",
                    extra={
                        "status_code": response.status_code,
                        "attempt": attempt + 1
                    }
                )
            except httpx.HTTPError as e:
                logger.error(
                    "Teams notification failed",
                    extra={
                        "error": str(e),
                        "attempt": attempt + 1
                    }
                )

            if attempt < self._max_attempts - 1:
                await asyncio.sleep(2 ** attempt)

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


def build_delivery_channels(config: Optional[Settings] = None) -> Dict[str, IDeliveryChannel]:
    """Create the channel per notification kind from settings."""
    config = config or default_settings

    if config.email_delivery == "smtp":
        if not config.smtp_host:
            raise ConfigurationException("SMTP delivery selected but SMTP_HOST is empty")
        email: IDeliveryChannel = SmtpEmailDelivery(
            hostname=config.smtp_host,
            port=config.smtp_port,
            sender=config.smtp_from,
            username=config.smtp_user,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
        )
    else:
        email = LoggingDelivery()

    return {
        NotificationKind.EMAIL: email,
        NotificationKind.TEAMS: TeamsWebhookDelivery(
            timeout_seconds=config.webhook_timeout_seconds,
            max_attempts=config.notification_max_attempts,
        ),
    }
