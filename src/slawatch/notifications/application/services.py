"""
Notification Application Services
==================================

Template rendering and per-channel dispatch.

Following SOLID principles:
- Single Responsibility: rendering and dispatch are separate services
- Dependency Inversion: both depend on store/channel abstractions, not on
  files, SMTP or HTTP directly
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from slawatch.config import NotificationKind
from slawatch.core import DeliveryException, TemplateNotFoundException
from slawatch.notifications.domain import NotificationPayload, RenderedNotification
from slawatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


# ========== Interfaces (Dependency Inversion) ==========

class ITemplateStore(ABC):
    """Read-only source of raw template text addressed by (kind, name)."""

    @abstractmethod
    async def load(self, kind: str, name: str) -> str:
        """Return raw template text or raise TemplateNotFoundException."""


class IDeliveryChannel(ABC):
    """Transport for rendered notifications."""

    @abstractmethod
    async def deliver(self, notification: RenderedNotification) -> bool:
        """Hand off a rendered notification; True when accepted."""

    async def close(self) -> None:
        """Release transport resources."""


# ========== Application Services ==========

def substitute(template: str, data: Mapping[str, Any]) -> str:
    """
    Replace `{{ key }}` placeholders with stringified values.

    Missing keys and None values become an empty string. Substituted values
    are not scanned again.
    """
    def _replace(match: "re.Match[str]") -> str:
        value = data.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


class TemplateRenderer:
    """Loads a template by kind and name and fills in its placeholders."""

    def __init__(self, store: ITemplateStore):
        self._store = store

    async def render(self, kind: str, name: str, data: Mapping[str, Any]) -> str:
        template = await self._store.load(kind, name)
        return substitute(template, data)

    async def render_payload(self, payload: NotificationPayload) -> str:
        return await self.render(payload.kind, payload.template_name, payload.data)


class NotificationDispatcher:
    """
    One "send" operation per channel.

    Renders with the channel's template kind, then hands the result to the
    delivery channel registered for that kind. Failures are logged and
    returned as False; nothing is retried here.
    """

    def __init__(
        self,
        renderer: TemplateRenderer,
        channels: Dict[str, IDeliveryChannel]
    ):
        self._renderer = renderer
        self._channels = channels

    async def send_email(
        self,
        to: str,
        subject: str,
        template_name: str,
        data: Mapping[str, Any]
    ) -> bool:
        """Render an email template and deliver it to `to`."""
        return await self._send(
            NotificationPayload(NotificationKind.EMAIL, template_name, dict(data)),
            destination=to,
            subject=subject,
        )

    async def send_teams_webhook(
        self,
        webhook_url: str,
        template_name: str,
        data: Mapping[str, Any]
    ) -> bool:
        """Render a Teams template and post it to `webhook_url`."""
        return await self._send(
            NotificationPayload(NotificationKind.TEAMS, template_name, dict(data)),
            destination=webhook_url,
        )

    async def _send(
        self,
        payload: NotificationPayload,
        destination: str,
        subject: Optional[str] = None
    ) -> bool:
        channel = self._channels.get(payload.kind)
        if channel is None:
            logger.error(
                "No delivery channel configured",
                extra={"kind": payload.kind, "template": payload.template_name}
            )
            return False

        try:
            body = await self._renderer.render_payload(payload)
        except TemplateNotFoundException as e:
            logger.error(
                "Notification template not found",
                extra={"kind": payload.kind, "template": payload.template_name, "error": e.message}
            )
            return False

        notification = RenderedNotification(
            kind=payload.kind,
            destination=destination,
            subject=subject,
            body=body,
        )

        try:
            delivered = await channel.deliver(notification)
        except DeliveryException as e:
            logger.error(
                "Notification delivery failed",
                extra={"kind": payload.kind, "template": payload.template_name, "error": e.message}
            )
            return False

        if not delivered:
            logger.warning(
                "Notification not accepted by channel",
                extra={"kind": payload.kind, "template": payload.template_name}
            )
        return delivered

    async def close(self) -> None:
        for channel in self._channels.values():
            await channel.close()
