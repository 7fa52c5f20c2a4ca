"""
Notifications Domain Layer
==========================

Value objects describing notifications before and after rendering.
"""

from slawatch.notifications.domain.value_objects import (
    NotificationPayload,
    RenderedNotification,
)

__all__ = [
    "NotificationPayload",
    "RenderedNotification",
]
