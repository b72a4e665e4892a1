"""Startup wiring for the notification engine."""

from functools import lru_cache
from typing import Callable

import httpx
import structlog

from core.config import NotificationOptions, Settings, settings
from core.logging import setup_logging
from domain.entities.notification import Channel
from domain.services.delivery_log_recorder import DeliveryLogRecorder
from domain.services.notification_dispatcher import NotificationDispatcher
from domain.services.notification_service import NotificationService
from domain.services.preference_service import NotificationPreferenceService
from domain.services.provider_registry import ProviderRegistry
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
from infrastructure.providers.email import EmailNotificationProvider, EmailSender
from infrastructure.providers.in_app import InAppNotificationProvider
from infrastructure.providers.push import PushSender, WebPushNotificationProvider
from infrastructure.providers.teams_webhook import TeamsWebhookNotificationProvider
from infrastructure.providers.webhook import WebhookNotificationProvider

logger = structlog.get_logger()


def build_provider_registry(
    config: Settings,
    http_client: httpx.AsyncClient,
    email_sender: EmailSender | None = None,
    push_sender: PushSender | None = None,
) -> ProviderRegistry:
    """Register the providers enabled by ``config``.

    Email and push are registered only when a sender is supplied; the Teams
    provider only when a Teams webhook URL is configured.
    """
    registry = ProviderRegistry()

    if config.in_app_provider_enabled:
        registry.register(InAppNotificationProvider())
    if config.email_provider_enabled and email_sender is not None:
        registry.register(EmailNotificationProvider(email_sender))
    if config.push_provider_enabled and push_sender is not None:
        registry.register(WebPushNotificationProvider(push_sender))
    if config.webhook_provider_enabled:
        registry.register(WebhookNotificationProvider(http_client, config.webhook_default_url))
        if config.teams_webhook_url:
            registry.register(
                TeamsWebhookNotificationProvider(http_client, config.teams_webhook_url)
            )

    logger.info(
        "notification_providers_configured",
        providers=[p.name for p in registry],
        channels=registry.channels.name,
    )
    return registry


def build_notification_service(
    uow_factory: Callable[[], SQLAlchemyUnitOfWork],
    registry: ProviderRegistry,
    options: NotificationOptions,
) -> tuple[NotificationService, NotificationPreferenceService]:
    """Assemble the orchestrator and the preference service over one registry."""
    preference_service = NotificationPreferenceService(
        uow_factory, default_channels=Channel(options.default_channels)
    )
    dispatcher = NotificationDispatcher(
        registry,
        DeliveryLogRecorder(options.max_provider_response_length),
        timeout_seconds=options.provider_timeout_seconds,
    )
    service = NotificationService(uow_factory, preference_service, dispatcher, options)
    return service, preference_service


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_notification_options() -> NotificationOptions:
    """Get the immutable engine configuration."""
    return NotificationOptions.from_settings(settings)


@lru_cache
def get_http_client() -> httpx.AsyncClient:
    """Get the shared HTTP client used by webhook providers."""
    return httpx.AsyncClient(timeout=settings.notification_provider_timeout_seconds)


@lru_cache
def get_provider_registry() -> ProviderRegistry:
    """Get the provider registry built from settings."""
    return build_provider_registry(settings, get_http_client())


@lru_cache
def _get_services() -> tuple[NotificationService, NotificationPreferenceService]:
    setup_logging()
    return build_notification_service(
        get_uow_factory(), get_provider_registry(), get_notification_options()
    )


def get_notification_service() -> NotificationService:
    """Get Notification service instance."""
    return _get_services()[0]


def get_preference_service() -> NotificationPreferenceService:
    """Get Notification preference service instance."""
    return _get_services()[1]
