"""Append-only recorder for delivery attempts."""

from uuid import UUID

from domain.entities.notification import Channel, DeliveryResult, NotificationDeliveryLog
from domain.repositories.unit_of_work import IUnitOfWork


class DeliveryLogRecorder:
    """Writes one immutable NotificationDeliveryLog row per attempt.

    Rows are never updated; they disappear only when their notification is
    purged.
    """

    def __init__(self, max_response_length: int = 2000) -> None:
        self._max_response_length = max_response_length

    async def next_attempt_number(
        self, uow: IUnitOfWork, notification_id: UUID, channel: Channel
    ) -> int:
        """1-based attempt number for the next attempt on ``channel``."""
        return await uow.delivery_logs.count_for_channel(notification_id, channel) + 1

    async def record(
        self,
        uow: IUnitOfWork,
        notification_id: UUID,
        attempt_number: int,
        result: DeliveryResult,
    ) -> NotificationDeliveryLog:
        """Persist one attempt within an existing UoW transaction.

        Args:
            uow: The active Unit of Work (caller manages commit).
            notification_id: The notification the attempt belongs to.
            attempt_number: Per-channel attempt number, starting at 1.
            result: The provider outcome.

        Returns:
            The stored log entry.
        """
        log = NotificationDeliveryLog(
            notification_id=notification_id,
            channel=result.channel,
            attempt_number=attempt_number,
            is_success=result.is_success,
            provider_name=result.provider_name,
            error_message=result.error_message,
            provider_response=self._truncate(result.provider_response),
            duration_ms=result.duration_ms,
        )
        return await uow.delivery_logs.add(log)

    def _truncate(self, response: str | None) -> str | None:
        if response is None or len(response) <= self._max_response_length:
            return response
        return response[: self._max_response_length]
