"""Notification repository protocol."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from domain.entities.notification import Notification


class INotificationRepository(Protocol):
    """Repository interface for Notification entities.

    Every read excludes soft-deleted rows.
    """

    async def create(self, notification: Notification) -> Notification:
        """Insert a new notification."""
        ...

    async def get(self, notification_id: UUID) -> Notification | None:
        """Get a notification by ID."""
        ...

    async def get_many(self, notification_ids: list[UUID]) -> list[Notification]:
        """Get all notifications whose ID is in the list."""
        ...

    async def update(self, notification: Notification) -> Notification:
        """Persist the mutable lifecycle fields of an existing notification."""
        ...

    async def get_user_notifications(
        self,
        user_id: str,
        include_read: bool = False,
    ) -> list[Notification]:
        """Get notifications for a user, newest first."""
        ...

    async def count_unread(self, user_id: str) -> int:
        """Count notifications for a user with no read timestamp."""
        ...

    async def mark_all_read(self, user_id: str, now: datetime) -> int:
        """Mark every unread, non-expired notification of a user as read. Returns count updated."""
        ...

    async def soft_delete(self, notification_id: UUID, now: datetime) -> bool:
        """Soft-delete a notification."""
        ...

    async def get_due_scheduled(self, now: datetime, limit: int = 100) -> list[Notification]:
        """Get queued notifications whose scheduled time has passed, oldest first."""
        ...

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Hard-delete delivered or read notifications created before ``cutoff``. Returns count deleted."""
        ...
