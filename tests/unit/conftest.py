"""Shared fixtures for unit tests."""

import pytest

from core.config import NotificationOptions
from domain.entities.notification import Channel
from domain.services.delivery_log_recorder import DeliveryLogRecorder
from domain.services.notification_dispatcher import NotificationDispatcher
from domain.services.notification_service import NotificationService
from domain.services.preference_service import NotificationPreferenceService
from domain.services.provider_registry import ProviderRegistry
from tests.unit.fakes import FakeProvider, FakeUnitOfWork

# --- Fixtures ---


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Create a fresh FakeUnitOfWork."""
    return FakeUnitOfWork()


@pytest.fixture
def options() -> NotificationOptions:
    """Engine options with a small batch limit."""
    return NotificationOptions(max_batch_size=5, provider_timeout_seconds=1.0)


@pytest.fixture
def in_app_provider() -> FakeProvider:
    return FakeProvider(Channel.IN_APP)


@pytest.fixture
def email_provider() -> FakeProvider:
    return FakeProvider(Channel.EMAIL, priority=10)


@pytest.fixture
def registry(in_app_provider: FakeProvider, email_provider: FakeProvider) -> ProviderRegistry:
    return ProviderRegistry([in_app_provider, email_provider])


@pytest.fixture
def dispatcher(
    registry: ProviderRegistry, options: NotificationOptions
) -> NotificationDispatcher:
    return NotificationDispatcher(
        registry,
        DeliveryLogRecorder(options.max_provider_response_length),
        timeout_seconds=options.provider_timeout_seconds,
    )


@pytest.fixture
def preference_service(uow: FakeUnitOfWork) -> NotificationPreferenceService:
    return NotificationPreferenceService(lambda: uow)


@pytest.fixture
def service(
    uow: FakeUnitOfWork,
    preference_service: NotificationPreferenceService,
    dispatcher: NotificationDispatcher,
    options: NotificationOptions,
) -> NotificationService:
    return NotificationService(lambda: uow, preference_service, dispatcher, options)


@pytest.fixture
def user_id() -> str:
    return "user-1"
