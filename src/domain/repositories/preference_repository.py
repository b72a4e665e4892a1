"""Notification preference repository protocol."""

from typing import Protocol

from domain.entities.notification import NotificationPreference


class IPreferenceRepository(Protocol):
    """Repository interface for NotificationPreference entities."""

    async def get(self, user_id: str, category: str | None = None) -> NotificationPreference | None:
        """Get the preference for exactly (user_id, category); ``None`` category is the user default."""
        ...

    async def list_for_user(self, user_id: str) -> list[NotificationPreference]:
        """Get all preferences for a user."""
        ...

    async def upsert(self, preference: NotificationPreference) -> NotificationPreference:
        """Insert or update the preference keyed by (user_id, category)."""
        ...
