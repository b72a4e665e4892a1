"""Web push provider delegating encryption and transport to an injected sender."""

from typing import Any, Protocol

from domain.entities.notification import Channel, DeliveryResult, Notification, RecipientContact
from infrastructure.providers.base import NotificationProviderBase


class PushSender(Protocol):
    """Web Push transport (VAPID signing and payload encryption live here)."""

    async def __call__(
        self, subscription: RecipientContact, payload: dict[str, Any]
    ) -> str | None:
        """Push one payload to a subscription. Raises on failure."""
        ...


class WebPushNotificationProvider(NotificationProviderBase):
    """Sends notifications to the browser push subscription stored on the preference."""

    def __init__(self, sender: PushSender) -> None:
        super().__init__()
        self._sender = sender

    @property
    def channel(self) -> Channel:
        return Channel.PUSH

    @property
    def name(self) -> str:
        return "WebPush"

    @property
    def priority(self) -> int:
        return 15

    def can_deliver(self, notification: Notification) -> bool:
        return (
            super().can_deliver(notification)
            and notification.contact is not None
            and notification.contact.has_push_subscription
        )

    async def send(self, notification: Notification) -> DeliveryResult:
        self._log_start(notification)
        contact = notification.contact
        if contact is None or not contact.has_push_subscription:
            return self._failure(notification, "No push subscription for recipient")

        try:
            response, duration_ms = await self._measure(
                self._sender(contact, self.build_payload(notification))
            )
        except Exception as e:
            self._logger.exception("push_send_failed", notification_id=str(notification.id))
            return self._failure(notification, str(e) or type(e).__name__)

        return self._success(notification, duration_ms, response)

    @staticmethod
    def build_payload(notification: Notification) -> dict[str, Any]:
        """Payload shown by the service worker."""
        payload: dict[str, Any] = {
            "title": notification.title,
            "body": notification.message,
            "tag": str(notification.id),
            "data": {
                "notificationId": str(notification.id),
                "type": notification.type.value,
                "priority": notification.priority.name,
            },
        }
        if notification.image_url:
            payload["icon"] = notification.image_url
        if notification.action_url:
            payload["data"]["url"] = notification.action_url
        return payload
