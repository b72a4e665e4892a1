"""In-app provider: the stored notification row is the user's inbox entry."""

from domain.entities.notification import Channel, DeliveryResult, Notification
from infrastructure.providers.base import NotificationProviderBase


class InAppNotificationProvider(NotificationProviderBase):
    """Marks in-app delivery as done once the notification is persisted.

    Clients read the inbox through ``get_user_notifications``; real-time
    fan-out to connected clients is left to the hosting application.
    """

    @property
    def channel(self) -> Channel:
        return Channel.IN_APP

    @property
    def name(self) -> str:
        return "InApp"

    @property
    def priority(self) -> int:
        return 0

    def can_deliver(self, notification: Notification) -> bool:
        return super().can_deliver(notification) and bool(notification.recipient_user_id)

    async def send(self, notification: Notification) -> DeliveryResult:
        self._log_start(notification)
        return self._success(notification)
