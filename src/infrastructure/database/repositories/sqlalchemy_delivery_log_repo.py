"""SQLAlchemy implementation of the delivery log repository."""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.notification import Channel, NotificationDeliveryLog
from infrastructure.database.models import NotificationDeliveryLogModel


class SQLAlchemyDeliveryLogRepository:
    """SQLAlchemy implementation of IDeliveryLogRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, log: NotificationDeliveryLog) -> NotificationDeliveryLog:
        """Insert one attempt record."""
        model = self._to_model(log)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def list_for_notification(self, notification_id: UUID) -> list[NotificationDeliveryLog]:
        """Get all attempts for a notification, oldest first."""
        stmt = (
            select(NotificationDeliveryLogModel)
            .where(NotificationDeliveryLogModel.notification_id == notification_id)
            .order_by(
                NotificationDeliveryLogModel.created_at,
                NotificationDeliveryLogModel.channel,
                NotificationDeliveryLogModel.attempt_number,
            )
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars()]

    async def count_for_channel(self, notification_id: UUID, channel: Channel) -> int:
        """Count attempts already recorded for one channel of a notification."""
        stmt = select(func.count(NotificationDeliveryLogModel.id)).where(
            NotificationDeliveryLogModel.notification_id == notification_id,
            NotificationDeliveryLogModel.channel == int(channel),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    # --- Conversion methods ---

    def _to_entity(self, model: NotificationDeliveryLogModel) -> NotificationDeliveryLog:
        """Convert NotificationDeliveryLogModel to domain entity."""
        return NotificationDeliveryLog(
            id=model.id,
            notification_id=model.notification_id,
            channel=Channel(model.channel),
            attempt_number=model.attempt_number,
            is_success=model.is_success,
            provider_name=model.provider_name,
            error_message=model.error_message,
            provider_response=model.provider_response,
            duration_ms=model.duration_ms,
            created_at=model.created_at,
        )

    def _to_model(self, entity: NotificationDeliveryLog) -> NotificationDeliveryLogModel:
        """Convert NotificationDeliveryLog domain entity to ORM model."""
        return NotificationDeliveryLogModel(
            id=entity.id,
            notification_id=entity.notification_id,
            channel=int(entity.channel),
            attempt_number=entity.attempt_number,
            is_success=entity.is_success,
            provider_name=entity.provider_name,
            error_message=entity.error_message,
            provider_response=entity.provider_response,
            duration_ms=entity.duration_ms,
            created_at=entity.created_at,
        )
