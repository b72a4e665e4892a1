"""Base notification provider abstract class.

All channel providers (in-app, email, web push, webhooks) inherit from this
base class and are registered in the ProviderRegistry at startup.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from domain.entities.notification import Channel, DeliveryResult, Notification

logger = structlog.get_logger()

T = TypeVar("T")


class NotificationProviderBase(ABC):
    """Abstract base class for channel providers.

    Subclasses declare ``channel``, ``name`` and ``priority`` and implement
    ``send``. ``can_deliver`` defaults to checking that the provider's channel
    is part of the effective set chosen for the current dispatch; subclasses
    extend it with their contact-data requirements.
    """

    def __init__(self) -> None:
        self._logger = logger.bind(provider=self.name, channel=self.channel.name)

    @property
    @abstractmethod
    def channel(self) -> Channel:
        """The single channel this provider serves."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name recorded on delivery logs."""

    @property
    def priority(self) -> int:
        """Lower values are tried first among providers of the same channel."""
        return 100

    def can_deliver(self, notification: Notification) -> bool:
        return bool(notification.effective_channels & self.channel)

    @abstractmethod
    async def send(self, notification: Notification) -> DeliveryResult:
        """Deliver the notification over this provider's channel."""

    # --- Helpers ---

    async def _measure(self, operation: Awaitable[T]) -> tuple[T, int]:
        """Await ``operation`` and return its result with the elapsed milliseconds."""
        start = time.perf_counter()
        result = await operation
        return result, int((time.perf_counter() - start) * 1000)

    def _success(
        self,
        notification: Notification,
        duration_ms: int = 0,
        provider_response: str | None = None,
    ) -> DeliveryResult:
        self._logger.info(
            "provider_delivery_succeeded",
            notification_id=str(notification.id),
            duration_ms=duration_ms,
        )
        return DeliveryResult.success(
            self.channel,
            provider_name=self.name,
            provider_response=provider_response,
            duration_ms=duration_ms,
        )

    def _failure(
        self,
        notification: Notification,
        error_message: str,
        duration_ms: int = 0,
    ) -> DeliveryResult:
        self._logger.warning(
            "provider_delivery_failed",
            notification_id=str(notification.id),
            error=error_message,
            duration_ms=duration_ms,
        )
        return DeliveryResult.failure(
            self.channel,
            error_message,
            provider_name=self.name,
            duration_ms=duration_ms,
        )

    def _log_start(self, notification: Notification) -> None:
        self._logger.debug("provider_delivery_started", notification_id=str(notification.id))
