"""Dispatcher: runs channel providers for one notification and records the outcome."""

import asyncio
import dataclasses
import time
from dataclasses import dataclass, field

import structlog

from domain.entities.notification import (
    Channel,
    DeliveryResult,
    Notification,
    NotificationDeliveryLog,
)
from domain.providers.notification_provider import INotificationProvider
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.delivery_log_recorder import DeliveryLogRecorder
from domain.services.provider_registry import ProviderRegistry

logger = structlog.get_logger()

NO_ELIGIBLE_PROVIDER = "No eligible provider for channel {channel}"


@dataclass
class DispatchOutcome:
    """Aggregated result of dispatching one notification."""

    results: list[DeliveryResult] = field(default_factory=list)
    logs: list[NotificationDeliveryLog] = field(default_factory=list)
    cancelled: bool = False

    @property
    def any_success(self) -> bool:
        return any(r.is_success for r in self.results)

    @property
    def failures(self) -> list[DeliveryResult]:
        return [r for r in self.results if not r.is_success]

    @property
    def error_summary(self) -> str | None:
        """All channel failures joined into one message, or None when nothing failed."""
        messages = [
            f"{r.channel.name}: {r.error_message or 'Unknown error'}" for r in self.failures
        ]
        return "; ".join(messages) if messages else None


class NotificationDispatcher:
    """Invokes the first eligible provider per channel and logs every attempt.

    Channels are attempted concurrently; the resulting log rows are written
    sequentially through the caller's Unit of Work. Provider exceptions and
    timeouts become failed DeliveryResults, so ``dispatch`` only raises for
    storage failures.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        recorder: DeliveryLogRecorder,
        timeout_seconds: float | None = 30.0,
    ) -> None:
        self._registry = registry
        self._recorder = recorder
        self._timeout_seconds = timeout_seconds

    async def dispatch(
        self,
        uow: IUnitOfWork,
        notification: Notification,
        channels: Channel,
    ) -> DispatchOutcome:
        """Deliver ``notification`` over each channel in ``channels``.

        If the calling task is cancelled while providers are running, the
        in-flight sends are awaited and recorded anyway, and the returned
        outcome is flagged ``cancelled`` so the caller can re-raise after
        persisting.
        """
        notification.effective_channels = channels
        targets = channels.members()
        if not targets:
            return DispatchOutcome()

        sends = asyncio.ensure_future(
            asyncio.gather(*(self._attempt_channel(notification, c) for c in targets))
        )
        cancelled = False
        try:
            results = await asyncio.shield(sends)
        except asyncio.CancelledError:
            cancelled = True
            logger.warning(
                "dispatch_cancelled_waiting_for_providers",
                notification_id=str(notification.id),
            )
            results = await sends

        outcome = DispatchOutcome(results=list(results), cancelled=cancelled)
        for result in outcome.results:
            attempt_number = await self._recorder.next_attempt_number(
                uow, notification.id, result.channel
            )
            log = await self._recorder.record(uow, notification.id, attempt_number, result)
            notification.delivery_attempts += 1
            outcome.logs.append(log)

        return outcome

    async def _attempt_channel(
        self, notification: Notification, channel: Channel
    ) -> DeliveryResult:
        for provider in self._registry.for_channel(channel):
            if self._can_deliver(provider, notification):
                return await self._send(provider, notification)

        logger.info(
            "no_eligible_provider",
            notification_id=str(notification.id),
            channel=channel.name,
        )
        return DeliveryResult.failure(channel, NO_ELIGIBLE_PROVIDER.format(channel=channel.name))

    def _can_deliver(self, provider: INotificationProvider, notification: Notification) -> bool:
        try:
            return provider.can_deliver(notification)
        except Exception:
            logger.exception(
                "provider_can_deliver_failed",
                provider=provider.name,
                notification_id=str(notification.id),
            )
            return False

    async def _send(
        self, provider: INotificationProvider, notification: Notification
    ) -> DeliveryResult:
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(provider.send(notification), self._timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "provider_send_timed_out",
                provider=provider.name,
                notification_id=str(notification.id),
                timeout_seconds=self._timeout_seconds,
            )
            return DeliveryResult.failure(
                provider.channel,
                f"Provider {provider.name} timed out after {self._timeout_seconds}s",
                provider_name=provider.name,
                duration_ms=_elapsed_ms(start),
            )
        except Exception as e:
            logger.exception(
                "provider_send_failed",
                provider=provider.name,
                notification_id=str(notification.id),
            )
            return DeliveryResult.failure(
                provider.channel,
                str(e) or type(e).__name__,
                provider_name=provider.name,
                duration_ms=_elapsed_ms(start),
            )

        if result.provider_name is None or result.channel != provider.channel:
            result = dataclasses.replace(
                result,
                channel=provider.channel,
                provider_name=result.provider_name or provider.name,
            )
        return result


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
