"""
Notifications Infrastructure Layer
==================================

- Templates: file-backed template store
- External: delivery channels (log, SMTP, Teams webhook)
"""

from slawatch.notifications.infrastructure.templates import FileTemplateStore
from slawatch.notifications.infrastructure.external import (
    LoggingDelivery,
    SmtpEmailDelivery,
    TeamsWebhookDelivery,
    CircuitBreaker,
    CircuitState,
    build_delivery_channels,
)

__all__ = [
    "FileTemplateStore",
    "LoggingDelivery",
    "SmtpEmailDelivery",
    "TeamsWebhookDelivery",
    "CircuitBreaker",
    "CircuitState",
    "build_delivery_channels",
]
