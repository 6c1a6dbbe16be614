import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from core.settings import settings
from models.enums import NotificationKind

from .email_service import (
    render_reference_completed,
    render_reference_declined,
    render_reference_reminder,
    render_reference_request,
    render_verification_status,
    send_html_email,
)

logger = logging.getLogger(__name__)


class NotificationGateway(ABC):
    """Delivers a typed message and reports whether delivery succeeded.

    Implementations must not raise for delivery failures.
    """

    @abstractmethod
    async def send(self, kind: NotificationKind, payload: dict) -> bool: ...


class EmailNotificationGateway(NotificationGateway):
    RENDERERS = {
        NotificationKind.REFERENCE_REQUEST: render_reference_request,
        NotificationKind.REFERENCE_REMINDER: render_reference_reminder,
        NotificationKind.REFERENCE_COMPLETED: render_reference_completed,
        NotificationKind.REFERENCE_DECLINED: render_reference_declined,
        NotificationKind.VERIFICATION_STATUS: render_verification_status,
    }

    def __init__(
        self,
        sender: Callable[[str, str, str], Awaitable[None]] = send_html_email,
    ):
        self.sender = sender

    async def send(self, kind: NotificationKind, payload: dict) -> bool:
        to_email = payload.get("to_email")
        if not to_email:
            logger.warning("Skipping %s notification: no recipient", kind.value)
            return False
        if self.sender is send_html_email and not settings.EMAIL_SERVER:
            logger.warning(
                "Skipping %s notification to %s: EMAIL_SERVER not configured",
                kind.value,
                to_email,
            )
            return False

        try:
            subject, html_content = self.RENDERERS[kind](payload)
            await self.sender(to_email, subject, html_content)
        except Exception:
            logger.exception("Failed to send %s notification to %s", kind.value, to_email)
            return False

        logger.info("Sent %s notification to %s", kind.value, to_email)
        return True


async def deliver_best_effort(
    gateway: NotificationGateway, kind: NotificationKind, payload: dict
) -> bool:
    try:
        return bool(await gateway.send(kind, payload))
    except Exception:
        logger.exception("Notification gateway raised while sending %s", kind.value)
        return False


def get_notification_gateway() -> NotificationGateway:
    return EmailNotificationGateway()
