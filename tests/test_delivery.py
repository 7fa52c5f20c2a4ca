"""Delivery channels: log, SMTP (mocked) and Teams webhook (httpx MockTransport)."""
import json
from unittest.mock import AsyncMock, patch

import aiosmtplib
import httpx
import pytest

from slawatch.config import NotificationKind, Settings
from slawatch.core import ConfigurationException, DeliveryException
from slawatch.notifications.domain import RenderedNotification
from slawatch.notifications.infrastructure import (
    CircuitBreaker,
    CircuitState,
    LoggingDelivery,
    SmtpEmailDelivery,
    TeamsWebhookDelivery,
    build_delivery_channels,
)

WEBHOOK = "https://outlook.office.com/webhook/abc"


def _teams(body='{"text": "breach"}', destination=WEBHOOK):
    return RenderedNotification(kind=NotificationKind.TEAMS, destination=destination, body=body)


def _email():
    return RenderedNotification(
        kind=NotificationKind.EMAIL,
        destination="ops@example.com",
        subject="SLA breach: Response Time",
        body="<p>T-1</p>",
    )


def _mock_client(*statuses):
    """httpx client answering with the given status codes in order."""
    requests = []
    remaining = list(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(remaining.pop(0) if len(remaining) > 1 else remaining[0])

    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), requests


class TestLoggingDelivery:
    @pytest.mark.asyncio
    async def test_always_accepts(self):
        assert await LoggingDelivery().deliver(_email()) is True


class TestSmtpEmailDelivery:
    @pytest.mark.asyncio
    async def test_sends_html_message(self):
        delivery = SmtpEmailDelivery("smtp.example.com", 587, "slawatch@example.com",
                                     username="bot", password="pw")
        with patch("slawatch.notifications.infrastructure.external.aiosmtplib.send",
                   new_callable=AsyncMock) as send:
            assert await delivery.deliver(_email()) is True

        message = send.call_args.args[0]
        assert message["To"] == "ops@example.com"
        assert message["Subject"] == "SLA breach: Response Time"
        assert send.call_args.kwargs["hostname"] == "smtp.example.com"
        assert send.call_args.kwargs["username"] == "bot"

    @pytest.mark.asyncio
    async def test_no_credentials_when_user_unset(self):
        delivery = SmtpEmailDelivery("smtp.example.com", 25, "slawatch@example.com")
        with patch("slawatch.notifications.infrastructure.external.aiosmtplib.send",
                   new_callable=AsyncMock) as send:
            await delivery.deliver(_email())
        assert "username" not in send.call_args.kwargs

    @pytest.mark.asyncio
    async def test_smtp_error_raises_delivery_exception(self):
        delivery = SmtpEmailDelivery("smtp.example.com", 587, "slawatch@example.com")
        with patch("slawatch.notifications.infrastructure.external.aiosmtplib.send",
                   new_callable=AsyncMock, side_effect=aiosmtplib.SMTPException("refused")):
            with pytest.raises(DeliveryException) as exc:
                await delivery.deliver(_email())
        assert exc.value.channel == "email"


class TestTeamsWebhookDelivery:
    @pytest.mark.asyncio
    async def test_posts_rendered_json(self):
        client, requests = _mock_client(200)
        delivery = TeamsWebhookDelivery(http_client=client)

        assert await delivery.deliver(_teams()) is True
        assert len(requests) == 1
        assert str(requests[0].url) == WEBHOOK
        assert json.loads(requests[0].content) == {"text": "breach"}
        await delivery.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["not json", "42", '"quoted"', "[1, 2]", "null"])
    async def test_non_object_body_is_wrapped(self, body):
        client, requests = _mock_client(200)
        delivery = TeamsWebhookDelivery(http_client=client)

        await delivery.deliver(_teams(body=body))
        assert json.loads(requests[0].content) == {"text": body}

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self):
        client, requests = _mock_client(500)
        delivery = TeamsWebhookDelivery(http_client=client)

        assert await delivery.deliver(_teams()) is False
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_retries_when_configured(self):
        client, requests = _mock_client(503, 200)
        delivery = TeamsWebhookDelivery(http_client=client, max_attempts=2)

        assert await delivery.deliver(_teams()) is True
        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_open_circuit_skips_request(self):
        client, requests = _mock_client(200)
        breaker = CircuitBreaker(failure_threshold=1)
        breaker.record_failure()
        delivery = TeamsWebhookDelivery(http_client=client, circuit_breaker=breaker)

        assert await delivery.deliver(_teams()) is False
        assert requests == []

    @pytest.mark.asyncio
    async def test_empty_destination_raises(self):
        delivery = TeamsWebhookDelivery(http_client=httpx.AsyncClient())
        with pytest.raises(DeliveryException):
            await delivery.deliver(_teams(destination=""))
        await delivery.close()


class TestCircuitBreaker:
    def test_opens_after_threshold_and_half_opens_after_timeout(self):
        now = [0.0]
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=30, clock=lambda: now[0])

        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED
        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        assert not breaker.allow_request()

        now[0] = 31.0
        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.allow_request()

        breaker.record_success()
        assert breaker.state == CircuitState.CLOSED


class TestBuildDeliveryChannels:
    def test_log_email_by_default(self):
        channels = build_delivery_channels(Settings(email_delivery="log"))
        assert isinstance(channels[NotificationKind.EMAIL], LoggingDelivery)
        assert isinstance(channels[NotificationKind.TEAMS], TeamsWebhookDelivery)

    def test_smtp_email(self):
        channels = build_delivery_channels(Settings(email_delivery="smtp", smtp_host="mail.example.com"))
        assert isinstance(channels[NotificationKind.EMAIL], SmtpEmailDelivery)

    def test_smtp_without_host_rejected(self):
        with pytest.raises(ConfigurationException):
            build_delivery_channels(Settings(email_delivery="smtp", smtp_host=""))
