"""Notification requests.

Delivery adapters are not part of this service: accepted requests are
validated, logged and acknowledged.
"""

from __future__ import annotations

from uuid import uuid4

from ..logger import get_logger
from ..schemas import EmailNotification, NotificationAccepted, NotificationRequest, SmsNotification

logger = get_logger(__name__)


def _mask(recipient: str) -> str:
    if "@" in recipient:
        local, _, domain = recipient.partition("@")
        return f"{local[:1]}***@{domain}"
    return f"***{recipient[-4:]}"


class NotificationDispatcher:
    def dispatch(self, request: NotificationRequest) -> NotificationAccepted:
        notification_id = uuid4()
        if isinstance(request, EmailNotification):
            logger.info("Accepted email notification %s to %s: %s", notification_id, _mask(request.to), request.subject)
        elif isinstance(request, SmsNotification):
            logger.info(
                "Accepted SMS notification %s to %s (%s chars)", notification_id, _mask(request.to), len(request.message)
            )
        return NotificationAccepted(id=notification_id, type=request.type)
