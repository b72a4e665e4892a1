"""SQLAlchemy implementation of the notification preference repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.notification import Channel, NotificationPreference, NotificationPriority
from infrastructure.database.models import NotificationPreferenceModel


class SQLAlchemyPreferenceRepository:
    """SQLAlchemy implementation of IPreferenceRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str, category: str | None = None) -> NotificationPreference | None:
        """Get the preference for exactly (user_id, category)."""
        model = await self._find(user_id, category)
        return self._to_entity(model) if model else None

    async def list_for_user(self, user_id: str) -> list[NotificationPreference]:
        """Get all preferences for a user, default first."""
        stmt = (
            select(NotificationPreferenceModel)
            .where(NotificationPreferenceModel.user_id == user_id)
            .order_by(
                NotificationPreferenceModel.category.is_not(None),
                NotificationPreferenceModel.category,
            )
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars()]

    async def upsert(self, preference: NotificationPreference) -> NotificationPreference:
        """Upsert a preference keyed by (user_id, category)."""
        existing = await self._find(preference.user_id, preference.category)

        if existing:
            existing.tenant_id = preference.tenant_id
            existing.enabled_channels = int(preference.enabled_channels)
            existing.is_enabled = preference.is_enabled
            existing.minimum_priority = int(preference.minimum_priority)
            existing.email = preference.email
            existing.phone = preference.phone
            existing.push_endpoint = preference.push_endpoint
            existing.push_public_key = preference.push_public_key
            existing.push_auth = preference.push_auth
            existing.webhook_url = preference.webhook_url
            existing.modified_at = preference.modified_at
            await self._session.flush()
            await self._session.refresh(existing)
            return self._to_entity(existing)

        model = self._to_model(preference)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def _find(
        self, user_id: str, category: str | None
    ) -> NotificationPreferenceModel | None:
        stmt = select(NotificationPreferenceModel).where(
            NotificationPreferenceModel.user_id == user_id,
            NotificationPreferenceModel.category == category
            if category is not None
            else NotificationPreferenceModel.category.is_(None),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    # --- Conversion methods ---

    def _to_entity(self, model: NotificationPreferenceModel) -> NotificationPreference:
        """Convert NotificationPreferenceModel to domain entity."""
        return NotificationPreference(
            id=model.id,
            user_id=model.user_id,
            category=model.category,
            tenant_id=model.tenant_id,
            enabled_channels=Channel(model.enabled_channels),
            is_enabled=model.is_enabled,
            minimum_priority=NotificationPriority(model.minimum_priority),
            email=model.email,
            phone=model.phone,
            push_endpoint=model.push_endpoint,
            push_public_key=model.push_public_key,
            push_auth=model.push_auth,
            webhook_url=model.webhook_url,
            created_at=model.created_at,
            modified_at=model.modified_at,
        )

    def _to_model(self, entity: NotificationPreference) -> NotificationPreferenceModel:
        """Convert NotificationPreference domain entity to ORM model."""
        return NotificationPreferenceModel(
            id=entity.id,
            user_id=entity.user_id,
            category=entity.category,
            tenant_id=entity.tenant_id,
            enabled_channels=int(entity.enabled_channels),
            is_enabled=entity.is_enabled,
            minimum_priority=int(entity.minimum_priority),
            email=entity.email,
            phone=entity.phone,
            push_endpoint=entity.push_endpoint,
            push_public_key=entity.push_public_key,
            push_auth=entity.push_auth,
            webhook_url=entity.webhook_url,
            created_at=entity.created_at,
            modified_at=entity.modified_at,
        )
