"""Notification service layer: send, batch, fan-out, schedule and read tracking."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timedelta
from typing import TypeVar
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from core.config import NotificationOptions
from core.exceptions import (
    AppException,
    BatchProcessingDisabledError,
    BatchSizeExceededError,
    ErrorCode,
    InvalidNotificationStatusError,
    MaxRetryAttemptsExceededError,
    MissingRecipientError,
    NotificationNotFoundError,
)
from core.result import Result
from domain.entities.notification import (
    Channel,
    Notification,
    NotificationDeliveryLog,
    NotificationRequest,
    NotificationStatus,
    to_naive_utc,
)
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.notification_dispatcher import DispatchOutcome, NotificationDispatcher
from domain.services.preference_service import (
    NotificationPreferenceService,
    compute_effective_channels,
)

logger = structlog.get_logger()

MAX_ERROR_MESSAGE_LENGTH = 1000

T = TypeVar("T")


class NotificationService:
    """Service layer for notification delivery and management."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        preference_service: NotificationPreferenceService,
        dispatcher: NotificationDispatcher,
        options: NotificationOptions | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._preferences = preference_service
        self._dispatcher = dispatcher
        self._options = options or NotificationOptions()

    # --- Sending ---

    async def send(self, request: NotificationRequest) -> Result[Notification]:
        """Create a notification from ``request`` and deliver it.

        A successful Result only means the notification was accepted and
        stored; callers inspect ``status`` and ``error_message`` to learn
        whether any channel actually delivered it.
        """
        return await self.send_notification(request.to_notification())

    async def send_notification(self, notification: Notification) -> Result[Notification]:
        """Deliver a pre-built Notification entity."""
        try:
            self._validate(notification)
        except AppException as e:
            logger.warning("notification_rejected", error_code=e.error_code.value, message=e.message)
            return Result.from_exception(e)

        now = datetime.utcnow()
        notification.created_at = now
        notification.status = NotificationStatus.PENDING
        notification.expires_at = to_naive_utc(notification.expires_at)
        if notification.expires_at is None:
            notification.expires_at = now + timedelta(days=self._options.default_expiration_days)

        try:
            async with self._uow_factory() as uow:
                await uow.notifications.create(notification)
                outcome = await self._deliver(uow, notification)
                await uow.notifications.update(notification)
                await uow.commit()
        except AppException as e:
            logger.error(
                "notification_send_failed",
                notification_id=str(notification.id),
                message=e.message,
            )
            return Result.from_exception(e)
        except SQLAlchemyError as e:
            logger.exception("notification_send_failed", notification_id=str(notification.id))
            return Result.fail(f"Failed to send notification: {e}", ErrorCode.DATABASE_ERROR)

        if outcome.cancelled:
            raise asyncio.CancelledError()

        logger.info(
            "notification_sent",
            notification_id=str(notification.id),
            status=notification.status.value,
            channels=notification.effective_channels.name,
            failures=len(outcome.failures),
        )
        return Result.ok(notification)

    async def send_batch(
        self, requests: Sequence[NotificationRequest]
    ) -> Result[list[Notification]]:
        """Send every request as an independent notification.

        The whole batch is rejected, with nothing created, when it is larger
        than ``max_batch_size`` or any item lacks a recipient.
        """
        notifications = [request.to_notification() for request in requests]
        return await self._send_many(notifications)

    async def send_to_multiple(
        self, request: NotificationRequest, user_ids: Sequence[str]
    ) -> Result[list[Notification]]:
        """Fan the same content out to each user as separate notifications."""
        notifications = [request.to_notification(recipient_user_id=uid) for uid in user_ids]
        return await self._send_many(notifications)

    async def schedule(
        self, request: NotificationRequest, scheduled_for: datetime
    ) -> Result[Notification]:
        """Store a notification as Queued for delivery at ``scheduled_for``.

        Nothing is dispatched here; an external scheduler picks up due
        notifications via ``get_due_scheduled`` and ``deliver_scheduled``.
        """
        notification = request.to_notification()
        try:
            self._validate(notification)
        except AppException as e:
            logger.warning("notification_rejected", error_code=e.error_code.value, message=e.message)
            return Result.from_exception(e)

        now = datetime.utcnow()
        notification.created_at = now
        notification.status = NotificationStatus.QUEUED
        notification.scheduled_for = to_naive_utc(scheduled_for)
        if notification.expires_at is None:
            notification.expires_at = now + timedelta(days=self._options.default_expiration_days)

        try:
            async with self._uow_factory() as uow:
                await uow.notifications.create(notification)
                await uow.commit()
        except SQLAlchemyError as e:
            logger.exception("notification_schedule_failed", notification_id=str(notification.id))
            return Result.fail(f"Failed to schedule notification: {e}", ErrorCode.DATABASE_ERROR)

        logger.info(
            "notification_scheduled",
            notification_id=str(notification.id),
            scheduled_for=notification.scheduled_for.isoformat(),
        )
        return Result.ok(notification)

    # --- Scheduler hooks ---

    async def get_due_scheduled(
        self, now: datetime | None = None, limit: int = 100
    ) -> list[Notification]:
        """Queued notifications whose scheduled time has passed, oldest first."""
        async with self._uow_factory() as uow:
            return await uow.notifications.get_due_scheduled(
                to_naive_utc(now) or datetime.utcnow(), limit
            )

    async def deliver_scheduled(self, notification_id: UUID) -> Result[Notification]:
        """Run the dispatch pipeline for a Queued notification.

        The notification leaves Queued either way: Delivered when a channel
        succeeds, otherwise Pending with ``error_message`` set.
        """

        async def run(uow: IUnitOfWork, notification: Notification) -> None:
            if notification.status != NotificationStatus.QUEUED:
                raise InvalidNotificationStatusError(
                    str(notification_id), notification.status.value, NotificationStatus.QUEUED.value
                )
            notification.status = NotificationStatus.PENDING

        return await self._redeliver(notification_id, run, "scheduled_notification_delivered")

    async def retry_delivery(self, notification_id: UUID) -> Result[Notification]:
        """Re-run dispatch for a notification that has not been delivered yet."""

        async def run(uow: IUnitOfWork, notification: Notification) -> None:
            if notification.status != NotificationStatus.PENDING:
                raise InvalidNotificationStatusError(
                    str(notification_id),
                    notification.status.value,
                    NotificationStatus.PENDING.value,
                )
            logs = await uow.delivery_logs.list_for_notification(notification.id)
            highest_attempt = max((log.attempt_number for log in logs), default=0)
            if highest_attempt >= self._options.max_retry_attempts:
                raise MaxRetryAttemptsExceededError(
                    str(notification_id), self._options.max_retry_attempts
                )

        return await self._redeliver(notification_id, run, "notification_retried")

    # --- Read tracking ---

    async def mark_as_read(self, notification_id: UUID) -> Result[None]:
        """Mark a notification as read. Already-read notifications succeed unchanged."""
        try:
            async with self._uow_factory() as uow:
                notification = await uow.notifications.get(notification_id)
                if notification is None:
                    raise NotificationNotFoundError(str(notification_id))
                if notification.mark_read(datetime.utcnow()):
                    await uow.notifications.update(notification)
                    await uow.commit()
        except AppException as e:
            return Result.from_exception(e)
        except SQLAlchemyError as e:
            logger.exception("notification_mark_read_failed", notification_id=str(notification_id))
            return Result.fail(f"Failed to mark as read: {e}", ErrorCode.DATABASE_ERROR)

        logger.debug("notification_marked_read", notification_id=str(notification_id))
        return Result.ok()

    async def mark_all_as_read(self, notification_ids: Sequence[UUID]) -> Result[None]:
        """Mark each listed notification as read; unknown IDs are ignored."""
        try:
            async with self._uow_factory() as uow:
                notifications = await uow.notifications.get_many(list(notification_ids))
                now = datetime.utcnow()
                for notification in notifications:
                    if notification.mark_read(now):
                        await uow.notifications.update(notification)
                await uow.commit()
        except SQLAlchemyError as e:
            logger.exception("notifications_mark_read_failed")
            return Result.fail(f"Failed to mark as read: {e}", ErrorCode.DATABASE_ERROR)

        logger.info("notifications_marked_read", count=len(notifications))
        return Result.ok()

    async def mark_all_as_read_for_user(self, user_id: str) -> Result[int]:
        """Mark every unread, non-expired notification of a user as read."""
        try:
            async with self._uow_factory() as uow:
                count = await uow.notifications.mark_all_read(user_id, datetime.utcnow())
                await uow.commit()
        except SQLAlchemyError as e:
            logger.exception("notifications_mark_read_failed", user_id=user_id)
            return Result.fail(f"Failed to mark as read: {e}", ErrorCode.DATABASE_ERROR)

        logger.info("user_notifications_marked_read", user_id=user_id, count=count)
        return Result.ok(count)

    # --- Queries ---

    async def get_notification(self, notification_id: UUID) -> Notification | None:
        """Get a notification by ID."""
        async with self._uow_factory() as uow:
            return await uow.notifications.get(notification_id)

    async def get_user_notifications(
        self, user_id: str, include_read: bool = False
    ) -> list[Notification]:
        """Get a user's notifications, newest first, excluding read ones by default."""
        async with self._uow_factory() as uow:
            return await uow.notifications.get_user_notifications(user_id, include_read)

    async def get_unread_count(self, user_id: str) -> int:
        """Get the count of unread notifications."""
        async with self._uow_factory() as uow:
            return await uow.notifications.count_unread(user_id)

    async def get_delivery_logs(self, notification_id: UUID) -> list[NotificationDeliveryLog]:
        """Get the delivery audit trail of a notification, oldest first."""
        async with self._uow_factory() as uow:
            return await uow.delivery_logs.list_for_notification(notification_id)

    # --- Removal ---

    async def delete(self, notification_id: UUID) -> Result[None]:
        """Soft-delete a notification; it disappears from every query."""
        try:
            async with self._uow_factory() as uow:
                deleted = await uow.notifications.soft_delete(notification_id, datetime.utcnow())
                if not deleted:
                    raise NotificationNotFoundError(str(notification_id))
                await uow.commit()
        except AppException as e:
            return Result.from_exception(e)
        except SQLAlchemyError as e:
            logger.exception("notification_delete_failed", notification_id=str(notification_id))
            return Result.fail(f"Failed to delete notification: {e}", ErrorCode.DATABASE_ERROR)

        logger.debug("notification_deleted", notification_id=str(notification_id))
        return Result.ok()

    async def cleanup_old_notifications(self) -> int:
        """Purge delivered or read notifications past the retention window. Called by scheduled task."""
        if not self._options.enable_auto_cleanup:
            return 0

        cutoff = datetime.utcnow() - timedelta(days=self._options.cleanup_after_days)
        async with self._uow_factory() as uow:
            count = await uow.notifications.delete_older_than(cutoff)
            await uow.commit()

        logger.info(
            "notification_cleanup_completed",
            deleted_count=count,
            cleanup_after_days=self._options.cleanup_after_days,
        )
        return count

    # --- Internals ---

    def _validate(self, notification: Notification) -> None:
        if not (
            notification.recipient_user_id
            or notification.recipient_email
            or notification.recipient_phone
        ):
            raise MissingRecipientError()

    async def _send_many(self, notifications: list[Notification]) -> Result[list[Notification]]:
        try:
            if not self._options.enable_batch_processing:
                raise BatchProcessingDisabledError()
            if len(notifications) > self._options.max_batch_size:
                raise BatchSizeExceededError(len(notifications), self._options.max_batch_size)
            for notification in notifications:
                self._validate(notification)
        except AppException as e:
            logger.warning("notification_batch_rejected", error_code=e.error_code.value, message=e.message)
            return Result.from_exception(e)

        results = await _bounded_gather(
            [self.send_notification(n) for n in notifications],
            self._options.batch_concurrency,
        )

        sent = [r.value for r in results if r.is_success and r.value is not None]
        logger.info("notification_batch_sent", sent=len(sent), total=len(notifications))
        return Result.ok(sent)

    async def _deliver(self, uow: IUnitOfWork, notification: Notification) -> DispatchOutcome:
        """Resolve effective channels, dispatch, and apply the aggregation rule."""
        if notification.recipient_user_id:
            preference = await self._preferences.resolve_preference(
                uow, notification.recipient_user_id, notification.category
            )
            channels = compute_effective_channels(
                preference, notification.channels, notification.priority
            )
            notification.contact = preference.to_contact()
        else:
            channels = notification.channels

        if channels == Channel.NONE:
            notification.modified_at = datetime.utcnow()
            notification.effective_channels = Channel.NONE
            logger.info(
                "notification_blocked_by_preferences",
                notification_id=str(notification.id),
                user_id=notification.recipient_user_id,
            )
            return DispatchOutcome()

        outcome = await self._dispatcher.dispatch(uow, notification, channels)
        now = datetime.utcnow()
        notification.modified_at = now
        if outcome.any_success:
            notification.status = NotificationStatus.DELIVERED
            notification.delivered_at = now
            notification.error_message = None
        else:
            summary = outcome.error_summary or "Delivery failed"
            notification.error_message = summary[:MAX_ERROR_MESSAGE_LENGTH]
        return outcome

    async def _redeliver(
        self,
        notification_id: UUID,
        check: Callable[[IUnitOfWork, Notification], Awaitable[None]],
        event: str,
    ) -> Result[Notification]:
        try:
            async with self._uow_factory() as uow:
                notification = await uow.notifications.get(notification_id)
                if notification is None:
                    raise NotificationNotFoundError(str(notification_id))
                await check(uow, notification)
                outcome = await self._deliver(uow, notification)
                await uow.notifications.update(notification)
                await uow.commit()
        except AppException as e:
            logger.warning(f"{event}_rejected", notification_id=str(notification_id), message=e.message)
            return Result.from_exception(e)
        except SQLAlchemyError as e:
            logger.exception(f"{event}_failed", notification_id=str(notification_id))
            return Result.fail(f"Failed to deliver notification: {e}", ErrorCode.DATABASE_ERROR)

        if outcome.cancelled:
            raise asyncio.CancelledError()

        logger.info(event, notification_id=str(notification_id), status=notification.status.value)
        return Result.ok(notification)


async def _bounded_gather(coros: list[Awaitable[T]], limit: int) -> list[T]:
    """Await ``coros`` with at most ``limit`` running at once, preserving order."""
    if limit <= 1:
        return [await coro for coro in coros]

    semaphore = asyncio.Semaphore(limit)

    async def run(coro: Awaitable[T]) -> T:
        async with semaphore:
            return await coro

    return list(await asyncio.gather(*(run(c) for c in coros)))
