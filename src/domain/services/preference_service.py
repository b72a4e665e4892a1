"""Preference service: per-user channel settings and effective-channel resolution."""

from collections.abc import Callable
from datetime import datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import ErrorCode
from core.result import Result
from domain.entities.notification import (
    Channel,
    NotificationPreference,
    NotificationPriority,
)
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


def compute_effective_channels(
    preference: NotificationPreference,
    requested: Channel,
    priority: NotificationPriority,
) -> Channel:
    """Narrow ``requested`` to what ``preference`` allows.

    A disabled preference or a priority below the preference floor yields
    ``Channel.NONE``; otherwise the bitwise intersection is returned.
    """
    if not preference.is_enabled:
        return Channel.NONE
    if priority < preference.minimum_priority:
        return Channel.NONE
    return Channel(requested & preference.enabled_channels)


class NotificationPreferenceService:
    """Service layer for notification preferences."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        default_channels: Channel = Channel.IN_APP,
    ) -> None:
        self._uow_factory = uow_factory
        self._default_channels = Channel(default_channels)

    def default_preference(self, user_id: str) -> NotificationPreference:
        """Virtual preference used when a user has stored nothing."""
        return NotificationPreference(
            user_id=user_id,
            enabled_channels=self._default_channels,
            is_enabled=True,
            minimum_priority=NotificationPriority.LOW,
        )

    # --- In-transaction resolution ---

    async def resolve_preference(
        self,
        uow: IUnitOfWork,
        user_id: str,
        category: str | None = None,
    ) -> NotificationPreference:
        """Find the preference that governs (user_id, category).

        Resolution order (most specific wins):
        1. user + category
        2. user default (category=NULL)
        3. System default (enabled, configured default channels, no priority floor)
        """
        if category is not None:
            preference = await uow.preferences.get(user_id, category)
            if preference is not None:
                return preference

        preference = await uow.preferences.get(user_id, None)
        if preference is not None:
            return preference

        return self.default_preference(user_id)

    # --- Read methods (use own UoW context) ---

    async def get_effective_channels(
        self,
        user_id: str,
        requested_channels: Channel,
        priority: NotificationPriority,
        category: str | None = None,
    ) -> Channel:
        """Channels a notification for ``user_id`` may actually use."""
        async with self._uow_factory() as uow:
            preference = await self.resolve_preference(uow, user_id, category)
        return compute_effective_channels(preference, requested_channels, priority)

    async def is_channel_enabled(
        self,
        user_id: str,
        channel: Channel,
        category: str | None = None,
    ) -> bool:
        """Check one channel against the preference that governs (user_id, category)."""
        async with self._uow_factory() as uow:
            preference = await self.resolve_preference(uow, user_id, category)
        return preference.is_channel_enabled(channel)

    async def get_preference(
        self, user_id: str, category: str | None = None
    ) -> NotificationPreference | None:
        """Get the stored preference for exactly (user_id, category)."""
        async with self._uow_factory() as uow:
            return await uow.preferences.get(user_id, category)

    async def get_all_preferences(self, user_id: str) -> list[NotificationPreference]:
        """Get all stored preferences for a user."""
        async with self._uow_factory() as uow:
            return await uow.preferences.list_for_user(user_id)

    # --- Write methods ---

    async def update_preference(
        self, preference: NotificationPreference
    ) -> Result[NotificationPreference]:
        """Upsert a preference keyed by (user_id, category)."""
        try:
            async with self._uow_factory() as uow:
                saved = await self._save(uow, preference)
                await uow.commit()
        except SQLAlchemyError as e:
            logger.exception("preference_update_failed", user_id=preference.user_id)
            return Result.fail(f"Failed to update preferences: {e}", ErrorCode.DATABASE_ERROR)

        logger.info(
            "preference_updated",
            user_id=preference.user_id,
            category=preference.category or "default",
        )
        return Result.ok(saved)

    async def set_enabled_channels(
        self,
        user_id: str,
        channels: Channel,
        category: str | None = None,
    ) -> Result[NotificationPreference]:
        """Replace the enabled channel set, creating the preference if needed."""
        return await self._modify(
            user_id,
            category,
            lambda pref: setattr(pref, "enabled_channels", Channel(channels)),
        )

    async def register_push_subscription(
        self,
        user_id: str,
        endpoint: str,
        public_key: str,
        auth: str,
    ) -> Result[NotificationPreference]:
        """Store a web-push subscription on the default preference and enable Push."""

        def apply(pref: NotificationPreference) -> None:
            pref.push_endpoint = endpoint
            pref.push_public_key = public_key
            pref.push_auth = auth
            pref.enabled_channels |= Channel.PUSH

        return await self._modify(user_id, None, apply)

    async def remove_push_subscription(self, user_id: str) -> Result[NotificationPreference]:
        """Clear the web-push subscription and disable Push. No-op when nothing is stored."""
        try:
            async with self._uow_factory() as uow:
                preference = await uow.preferences.get(user_id, None)
                if preference is None:
                    return Result.ok(None)

                preference.push_endpoint = None
                preference.push_public_key = None
                preference.push_auth = None
                preference.enabled_channels &= ~Channel.PUSH
                saved = await self._save(uow, preference)
                await uow.commit()
        except SQLAlchemyError as e:
            logger.exception("push_subscription_remove_failed", user_id=user_id)
            return Result.fail(f"Failed to update preferences: {e}", ErrorCode.DATABASE_ERROR)

        logger.info("push_subscription_removed", user_id=user_id)
        return Result.ok(saved)

    # --- Helpers ---

    async def _modify(
        self,
        user_id: str,
        category: str | None,
        apply: Callable[[NotificationPreference], None],
    ) -> Result[NotificationPreference]:
        try:
            async with self._uow_factory() as uow:
                preference = await uow.preferences.get(user_id, category)
                if preference is None:
                    preference = NotificationPreference(
                        user_id=user_id,
                        category=category,
                        enabled_channels=self._default_channels,
                    )
                apply(preference)
                saved = await self._save(uow, preference)
                await uow.commit()
        except SQLAlchemyError as e:
            logger.exception("preference_update_failed", user_id=user_id)
            return Result.fail(f"Failed to update preferences: {e}", ErrorCode.DATABASE_ERROR)

        logger.info("preference_updated", user_id=user_id, category=category or "default")
        return Result.ok(saved)

    async def _save(
        self, uow: IUnitOfWork, preference: NotificationPreference
    ) -> NotificationPreference:
        preference.modified_at = datetime.utcnow()
        return await uow.preferences.upsert(preference)
