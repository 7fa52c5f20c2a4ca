"""
Notifications Application Layer
===============================

Contains:
- Services: TemplateRenderer, NotificationDispatcher
- Interfaces: template store and delivery channel abstractions
"""

from slawatch.notifications.application.services import (
    ITemplateStore,
    IDeliveryChannel,
    TemplateRenderer,
    NotificationDispatcher,
    substitute,
)

__all__ = [
    "ITemplateStore",
    "IDeliveryChannel",
    "TemplateRenderer",
    "NotificationDispatcher",
    "substitute",
]
