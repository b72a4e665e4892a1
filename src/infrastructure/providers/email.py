"""Email provider delegating transport to an injected sender."""

from typing import Protocol

from domain.entities.notification import Channel, DeliveryResult, Notification
from infrastructure.providers.base import NotificationProviderBase


class EmailSender(Protocol):
    """Transport used by EmailNotificationProvider (SMTP client, mail API, ...)."""

    async def __call__(self, to: str, subject: str, body: str) -> str | None:
        """Send one message. Returns an optional transport response; raises on failure."""
        ...


class EmailNotificationProvider(NotificationProviderBase):
    """Sends notifications to the recipient's email address."""

    def __init__(self, sender: EmailSender) -> None:
        super().__init__()
        self._sender = sender

    @property
    def channel(self) -> Channel:
        return Channel.EMAIL

    @property
    def name(self) -> str:
        return "Email"

    @property
    def priority(self) -> int:
        return 10

    def can_deliver(self, notification: Notification) -> bool:
        return super().can_deliver(notification) and self._address(notification) is not None

    async def send(self, notification: Notification) -> DeliveryResult:
        self._log_start(notification)
        address = self._address(notification)
        if address is None:
            return self._failure(notification, "No email address for recipient")

        try:
            response, duration_ms = await self._measure(
                self._sender(address, notification.title, self._body(notification))
            )
        except Exception as e:
            self._logger.exception("email_send_failed", notification_id=str(notification.id))
            return self._failure(notification, str(e) or type(e).__name__)

        return self._success(notification, duration_ms, response)

    def _address(self, notification: Notification) -> str | None:
        """Explicit recipient address first, then the preference contact."""
        if notification.recipient_email:
            return notification.recipient_email
        if notification.contact and notification.contact.email:
            return notification.contact.email
        return None

    def _body(self, notification: Notification) -> str:
        if notification.action_url:
            return f"{notification.message}\n\n{notification.action_url}"
        return notification.message
