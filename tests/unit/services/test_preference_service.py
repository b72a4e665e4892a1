"""Unit tests for the notification preference service."""

import itertools
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from core.exceptions import ErrorCode
from domain.entities.notification import (
    SINGLE_CHANNELS,
    Channel,
    NotificationPreference,
    NotificationPriority,
)
from domain.services.preference_service import (
    NotificationPreferenceService,
    compute_effective_channels,
)

from tests.unit.fakes import FakeUnitOfWork

ALL_CHANNEL_SETS = [
    Channel(sum(int(c) for c in combo))
    for r in range(len(SINGLE_CHANNELS) + 1)
    for combo in itertools.combinations(SINGLE_CHANNELS, r)
]


# --- compute_effective_channels ---


class TestComputeEffectiveChannels:
    """Test the pure channel-narrowing rule."""

    def test_intersects_requested_with_enabled(self):
        """Push is dropped when the preference only allows in-app and email."""
        preference = NotificationPreference(
            user_id="u1",
            enabled_channels=Channel.IN_APP | Channel.EMAIL,
            minimum_priority=NotificationPriority.NORMAL,
        )

        effective = compute_effective_channels(
            preference,
            Channel.IN_APP | Channel.EMAIL | Channel.PUSH,
            NotificationPriority.HIGH,
        )

        assert effective == Channel.IN_APP | Channel.EMAIL

    def test_priority_below_floor_yields_none(self):
        preference = NotificationPreference(
            user_id="u1",
            enabled_channels=Channel.ALL,
            minimum_priority=NotificationPriority.HIGH,
        )

        effective = compute_effective_channels(
            preference, Channel.ALL, NotificationPriority.NORMAL
        )

        assert effective == Channel.NONE

    def test_priority_equal_to_floor_passes(self):
        preference = NotificationPreference(
            user_id="u1",
            enabled_channels=Channel.EMAIL,
            minimum_priority=NotificationPriority.HIGH,
        )

        effective = compute_effective_channels(preference, Channel.EMAIL, NotificationPriority.HIGH)

        assert effective == Channel.EMAIL

    def test_disabled_preference_yields_none(self):
        preference = NotificationPreference(
            user_id="u1", enabled_channels=Channel.ALL, is_enabled=False
        )

        effective = compute_effective_channels(
            preference, Channel.ALL, NotificationPriority.CRITICAL
        )

        assert effective == Channel.NONE

    @pytest.mark.parametrize("requested", ALL_CHANNEL_SETS)
    @pytest.mark.parametrize("enabled", ALL_CHANNEL_SETS)
    def test_result_is_subset_of_intersection(self, requested: Channel, enabled: Channel):
        """Every effective set lies within requested AND enabled."""
        for priority, floor in itertools.product(NotificationPriority, NotificationPriority):
            for is_enabled in (True, False):
                preference = NotificationPreference(
                    user_id="u1",
                    enabled_channels=enabled,
                    is_enabled=is_enabled,
                    minimum_priority=floor,
                )

                effective = compute_effective_channels(preference, requested, priority)

                assert effective & ~(requested & enabled) == Channel.NONE
                if not is_enabled or priority < floor:
                    assert effective == Channel.NONE


# --- Resolution ---


class TestResolvePreference:
    """Test category, user-default and system-default fallback."""

    @pytest.mark.asyncio
    async def test_category_preference_wins(
        self, preference_service: NotificationPreferenceService, uow: FakeUnitOfWork
    ):
        await uow.preferences.upsert(
            NotificationPreference(user_id="u1", enabled_channels=Channel.EMAIL)
        )
        await uow.preferences.upsert(
            NotificationPreference(user_id="u1", category="billing", enabled_channels=Channel.PUSH)
        )

        resolved = await preference_service.resolve_preference(uow, "u1", "billing")

        assert resolved.category == "billing"
        assert resolved.enabled_channels == Channel.PUSH

    @pytest.mark.asyncio
    async def test_falls_back_to_user_default(
        self, preference_service: NotificationPreferenceService, uow: FakeUnitOfWork
    ):
        await uow.preferences.upsert(
            NotificationPreference(user_id="u1", enabled_channels=Channel.EMAIL)
        )

        resolved = await preference_service.resolve_preference(uow, "u1", "billing")

        assert resolved.category is None
        assert resolved.enabled_channels == Channel.EMAIL

    @pytest.mark.asyncio
    async def test_falls_back_to_virtual_default(
        self, uow: FakeUnitOfWork
    ):
        """No stored rows gives an enabled preference with the configured default channels."""
        service = NotificationPreferenceService(
            lambda: uow, default_channels=Channel.IN_APP | Channel.EMAIL
        )

        resolved = await service.resolve_preference(uow, "u1", "billing")

        assert resolved.is_enabled is True
        assert resolved.enabled_channels == Channel.IN_APP | Channel.EMAIL
        assert resolved.minimum_priority == NotificationPriority.LOW
        assert uow.preferences.rows == {}

    @pytest.mark.asyncio
    async def test_get_effective_channels_uses_stored_preference(
        self, preference_service: NotificationPreferenceService, uow: FakeUnitOfWork
    ):
        await uow.preferences.upsert(
            NotificationPreference(
                user_id="u1",
                enabled_channels=Channel.IN_APP | Channel.EMAIL,
                minimum_priority=NotificationPriority.NORMAL,
            )
        )

        effective = await preference_service.get_effective_channels(
            "u1", Channel.IN_APP | Channel.EMAIL | Channel.PUSH, NotificationPriority.HIGH
        )

        assert effective == Channel.IN_APP | Channel.EMAIL

    @pytest.mark.asyncio
    async def test_is_channel_enabled(
        self, preference_service: NotificationPreferenceService, uow: FakeUnitOfWork
    ):
        await uow.preferences.upsert(
            NotificationPreference(user_id="u1", enabled_channels=Channel.EMAIL)
        )

        assert await preference_service.is_channel_enabled("u1", Channel.EMAIL) is True
        assert await preference_service.is_channel_enabled("u1", Channel.PUSH) is False
        # Unknown user falls back to the default (in-app only)
        assert await preference_service.is_channel_enabled("u2", Channel.IN_APP) is True

    @pytest.mark.asyncio
    async def test_is_channel_enabled_uses_user_default_for_unknown_category(
        self, preference_service: NotificationPreferenceService, uow: FakeUnitOfWork
    ):
        await uow.preferences.upsert(
            NotificationPreference(user_id="u1", enabled_channels=Channel.EMAIL)
        )
        await uow.preferences.upsert(
            NotificationPreference(user_id="u1", category="billing", enabled_channels=Channel.PUSH)
        )

        assert await preference_service.is_channel_enabled("u1", Channel.EMAIL, "security") is True
        assert await preference_service.is_channel_enabled("u1", Channel.IN_APP, "security") is False
        assert await preference_service.is_channel_enabled("u1", Channel.PUSH, "billing") is True
        assert await preference_service.is_channel_enabled("u1", Channel.EMAIL, "billing") is False


# --- Writes ---


class TestPreferenceWrites:
    """Test upserts and push-subscription toggles."""

    @pytest.mark.asyncio
    async def test_set_enabled_channels_creates_then_updates(
        self, preference_service: NotificationPreferenceService, uow: FakeUnitOfWork
    ):
        first = await preference_service.set_enabled_channels("u1", Channel.EMAIL)
        second = await preference_service.set_enabled_channels("u1", Channel.EMAIL | Channel.PUSH)

        assert first.is_success and second.is_success
        assert len(uow.preferences.rows) == 1
        stored = await uow.preferences.get("u1")
        assert stored is not None
        assert stored.enabled_channels == Channel.EMAIL | Channel.PUSH
        assert stored.modified_at is not None

    @pytest.mark.asyncio
    async def test_register_push_subscription_enables_push(
        self, preference_service: NotificationPreferenceService, uow: FakeUnitOfWork
    ):
        result = await preference_service.register_push_subscription(
            "u1", "https://push.example/abc", "pubkey", "authsecret"
        )

        assert result.is_success
        stored = await uow.preferences.get("u1")
        assert stored is not None
        assert stored.push_endpoint == "https://push.example/abc"
        assert stored.enabled_channels == Channel.IN_APP | Channel.PUSH
        assert stored.to_contact().has_push_subscription

    @pytest.mark.asyncio
    async def test_register_push_subscription_is_idempotent(
        self, preference_service: NotificationPreferenceService, uow: FakeUnitOfWork
    ):
        for _ in range(2):
            await preference_service.register_push_subscription("u1", "e", "k", "a")

        stored = await uow.preferences.get("u1")
        assert stored is not None
        assert stored.enabled_channels == Channel.IN_APP | Channel.PUSH
        assert len(uow.preferences.rows) == 1

    @pytest.mark.asyncio
    async def test_remove_push_subscription_disables_push(
        self, preference_service: NotificationPreferenceService, uow: FakeUnitOfWork
    ):
        await preference_service.register_push_subscription("u1", "e", "k", "a")

        result = await preference_service.remove_push_subscription("u1")

        assert result.is_success
        stored = await uow.preferences.get("u1")
        assert stored is not None
        assert stored.push_endpoint is None
        assert stored.push_auth is None
        assert stored.enabled_channels == Channel.IN_APP

    @pytest.mark.asyncio
    async def test_remove_push_subscription_without_preference_is_noop(
        self, preference_service: NotificationPreferenceService, uow: FakeUnitOfWork
    ):
        result = await preference_service.remove_push_subscription("nobody")

        assert result.is_success
        assert result.value is None
        assert uow.preferences.rows == {}

    @pytest.mark.asyncio
    async def test_update_preference_and_list(
        self, preference_service: NotificationPreferenceService
    ):
        await preference_service.update_preference(
            NotificationPreference(user_id="u1", enabled_channels=Channel.EMAIL)
        )
        await preference_service.update_preference(
            NotificationPreference(user_id="u1", category="billing", is_enabled=False)
        )

        preferences = await preference_service.get_all_preferences("u1")
        billing = await preference_service.get_preference("u1", "billing")

        assert len(preferences) == 2
        assert billing is not None
        assert billing.is_enabled is False

    @pytest.mark.asyncio
    async def test_storage_failure_returns_failed_result(
        self, preference_service: NotificationPreferenceService, uow: FakeUnitOfWork
    ):
        uow.preferences.upsert = AsyncMock(  # type: ignore[method-assign]
            side_effect=OperationalError("INSERT", {}, Exception("db down"))
        )

        result = await preference_service.update_preference(
            NotificationPreference(user_id="u1")
        )

        assert result.is_success is False
        assert result.error_code == ErrorCode.DATABASE_ERROR
