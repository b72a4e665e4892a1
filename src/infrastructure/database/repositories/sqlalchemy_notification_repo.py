"""SQLAlchemy implementation of Notification repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import PersistenceError
from domain.entities.notification import (
    Channel,
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from infrastructure.database.models import NotificationDeliveryLogModel, NotificationModel

_PURGEABLE_STATUSES = (NotificationStatus.DELIVERED.value, NotificationStatus.READ.value)


class SQLAlchemyNotificationRepository:
    """SQLAlchemy implementation of INotificationRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _active(self) -> Select[tuple[NotificationModel]]:
        """Base query excluding soft-deleted rows."""
        return select(NotificationModel).where(NotificationModel.is_deleted.is_(False))

    async def create(self, notification: Notification) -> Notification:
        """Create a new notification."""
        model = self._to_model(notification)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get(self, notification_id: UUID) -> Notification | None:
        """Get a notification by ID."""
        stmt = self._active().where(NotificationModel.id == notification_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_many(self, notification_ids: list[UUID]) -> list[Notification]:
        """Get notifications by ID; unknown IDs are skipped."""
        if not notification_ids:
            return []
        stmt = self._active().where(NotificationModel.id.in_(notification_ids))
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars()]

    async def update(self, notification: Notification) -> Notification:
        """Persist lifecycle fields of an existing notification."""
        model = await self._session.get(NotificationModel, notification.id)
        if model is None:
            raise PersistenceError(f"Notification {notification.id} does not exist")

        model.status = notification.status.value
        model.delivered_at = notification.delivered_at
        model.read_at = notification.read_at
        model.scheduled_for = notification.scheduled_for
        model.delivery_attempts = notification.delivery_attempts
        model.error_message = notification.error_message
        model.modified_at = notification.modified_at

        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_user_notifications(
        self,
        user_id: str,
        include_read: bool = False,
    ) -> list[Notification]:
        """Get a user's notifications, newest first."""
        stmt = self._active().where(NotificationModel.recipient_user_id == user_id)
        if not include_read:
            stmt = stmt.where(NotificationModel.read_at.is_(None))
        stmt = stmt.order_by(NotificationModel.created_at.desc())

        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars()]

    async def count_unread(self, user_id: str) -> int:
        """Get the count of unread notifications for a user."""
        stmt = select(func.count(NotificationModel.id)).where(
            NotificationModel.recipient_user_id == user_id,
            NotificationModel.read_at.is_(None),
            NotificationModel.is_deleted.is_(False),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def mark_all_read(self, user_id: str, now: datetime) -> int:
        """Mark all unread, non-expired notifications as read. Returns count updated."""
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.recipient_user_id == user_id,
                NotificationModel.read_at.is_(None),
                NotificationModel.is_deleted.is_(False),
                or_(NotificationModel.expires_at.is_(None), NotificationModel.expires_at > now),
            )
            .values(read_at=now, status=NotificationStatus.READ.value, modified_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[return-value]

    async def soft_delete(self, notification_id: UUID, now: datetime) -> bool:
        """Soft-delete a notification."""
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.id == notification_id,
                NotificationModel.is_deleted.is_(False),
            )
            .values(is_deleted=True, deleted_at=now, modified_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0  # type: ignore[return-value]

    async def get_due_scheduled(self, now: datetime, limit: int = 100) -> list[Notification]:
        """Get queued notifications whose scheduled time has passed, oldest first."""
        stmt = (
            self._active()
            .where(
                NotificationModel.status == NotificationStatus.QUEUED.value,
                NotificationModel.scheduled_for.is_not(None),
                NotificationModel.scheduled_for <= now,
            )
            .order_by(NotificationModel.scheduled_for)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars()]

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Purge delivered or read notifications, and their logs. Returns count deleted."""
        purgeable = select(NotificationModel.id).where(
            NotificationModel.status.in_(_PURGEABLE_STATUSES),
            NotificationModel.created_at < cutoff,
        )
        await self._session.execute(
            delete(NotificationDeliveryLogModel)
            .where(NotificationDeliveryLogModel.notification_id.in_(purgeable))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(
            delete(NotificationModel)
            .where(
                NotificationModel.status.in_(_PURGEABLE_STATUSES),
                NotificationModel.created_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[return-value]

    # --- Conversion methods ---

    def _to_entity(self, model: NotificationModel) -> Notification:
        """Convert NotificationModel to domain entity."""
        return Notification(
            id=model.id,
            title=model.title,
            message=model.message,
            type=NotificationType(model.type),
            priority=NotificationPriority(model.priority),
            category=model.category,
            channels=Channel(model.channels),
            recipient_user_id=model.recipient_user_id,
            recipient_email=model.recipient_email,
            recipient_phone=model.recipient_phone,
            sender_user_id=model.sender_user_id,
            tenant_id=model.tenant_id,
            status=NotificationStatus(model.status),
            scheduled_for=model.scheduled_for,
            delivered_at=model.delivered_at,
            read_at=model.read_at,
            expires_at=model.expires_at,
            delivery_attempts=model.delivery_attempts,
            error_message=model.error_message,
            metadata=model.metadata_,
            action_url=model.action_url,
            image_url=model.image_url,
            created_at=model.created_at,
            modified_at=model.modified_at,
            is_deleted=model.is_deleted,
            deleted_at=model.deleted_at,
        )

    def _to_model(self, entity: Notification) -> NotificationModel:
        """Convert Notification domain entity to ORM model."""
        return NotificationModel(
            id=entity.id,
            title=entity.title,
            message=entity.message,
            type=entity.type.value,
            priority=int(entity.priority),
            category=entity.category,
            channels=int(entity.channels),
            recipient_user_id=entity.recipient_user_id,
            recipient_email=entity.recipient_email,
            recipient_phone=entity.recipient_phone,
            sender_user_id=entity.sender_user_id,
            tenant_id=entity.tenant_id,
            status=entity.status.value,
            scheduled_for=entity.scheduled_for,
            delivered_at=entity.delivered_at,
            read_at=entity.read_at,
            expires_at=entity.expires_at,
            delivery_attempts=entity.delivery_attempts,
            error_message=entity.error_message,
            metadata_=entity.metadata,
            action_url=entity.action_url,
            image_url=entity.image_url,
            created_at=entity.created_at,
            modified_at=entity.modified_at,
            is_deleted=entity.is_deleted,
            deleted_at=entity.deleted_at,
        )
