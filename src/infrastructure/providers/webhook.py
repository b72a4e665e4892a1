"""Generic JSON webhook provider."""

from typing import Any

import httpx

from domain.entities.notification import Channel, DeliveryResult, Notification
from infrastructure.providers.base import NotificationProviderBase

WEBHOOK_URL_METADATA_KEY = "webhook_url"


class WebhookNotificationProvider(NotificationProviderBase):
    """POSTs the notification as JSON to a webhook URL.

    URL resolution: notification metadata, then the recipient's preference,
    then the configured default.
    """

    def __init__(self, client: httpx.AsyncClient, default_url: str | None = None) -> None:
        super().__init__()
        self._client = client
        self._default_url = default_url or None

    @property
    def channel(self) -> Channel:
        return Channel.WEBHOOK

    @property
    def name(self) -> str:
        return "Webhook"

    @property
    def priority(self) -> int:
        return 20

    def can_deliver(self, notification: Notification) -> bool:
        return super().can_deliver(notification) and bool(self.resolve_url(notification))

    async def send(self, notification: Notification) -> DeliveryResult:
        self._log_start(notification)
        url = self.resolve_url(notification)
        if not url:
            return self._failure(notification, f"{self.name} URL not configured")

        try:
            response, duration_ms = await self._measure(
                self._client.post(url, json=self.build_payload(notification))
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return self._failure(
                notification,
                f"HTTP {e.response.status_code} from {self.name} endpoint",
            )
        except httpx.HTTPError as e:
            self._logger.warning(
                "webhook_request_failed",
                notification_id=str(notification.id),
                error=str(e),
            )
            return self._failure(notification, str(e) or type(e).__name__)

        return self._success(notification, duration_ms, response.text)

    def resolve_url(self, notification: Notification) -> str | None:
        url = notification.get_metadata_value(WEBHOOK_URL_METADATA_KEY)
        if url:
            return str(url)
        if notification.contact and notification.contact.webhook_url:
            return notification.contact.webhook_url
        return self._default_url

    def build_payload(self, notification: Notification) -> dict[str, Any]:
        return {
            "id": str(notification.id),
            "title": notification.title,
            "message": notification.message,
            "type": notification.type.value,
            "priority": notification.priority.name,
            "category": notification.category,
            "recipientUserId": notification.recipient_user_id,
            "tenantId": notification.tenant_id,
            "actionUrl": notification.action_url,
            "imageUrl": notification.image_url,
            "metadata": notification.metadata,
            "createdAt": notification.created_at.isoformat(),
        }
