"""
Notification Value Objects
===========================

Immutable payloads passed between the dispatcher and delivery channels.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class NotificationPayload:
    """What to render: template kind, template name and placeholder data."""
    kind: str
    template_name: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RenderedNotification:
    """A rendered body ready for a delivery channel."""
    kind: str
    destination: str
    body: str
    subject: Optional[str] = None

    def preview(self, length: int = 200) -> str:
        return self.body[:length]
