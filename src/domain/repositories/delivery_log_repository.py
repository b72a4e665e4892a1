"""Delivery log repository protocol."""

from typing import Protocol
from uuid import UUID

from domain.entities.notification import Channel, NotificationDeliveryLog


class IDeliveryLogRepository(Protocol):
    """Append-only repository for delivery attempt records."""

    async def add(self, log: NotificationDeliveryLog) -> NotificationDeliveryLog:
        """Insert one attempt record."""
        ...

    async def list_for_notification(self, notification_id: UUID) -> list[NotificationDeliveryLog]:
        """Get all attempts for a notification, oldest first."""
        ...

    async def count_for_channel(self, notification_id: UUID, channel: Channel) -> int:
        """Count attempts already recorded for one channel of a notification."""
        ...
