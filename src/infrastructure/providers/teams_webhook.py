"""Microsoft Teams incoming-webhook provider (legacy MessageCard format)."""

from typing import Any

import httpx

from domain.entities.notification import Notification, NotificationType
from infrastructure.providers.webhook import WebhookNotificationProvider

TEAMS_URL_METADATA_KEY = "teams_webhook_url"

THEME_COLORS: dict[NotificationType, str] = {
    NotificationType.SUCCESS: "00FF00",
    NotificationType.WARNING: "FFA500",
    NotificationType.ERROR: "FF0000",
    NotificationType.INFO: "0078D4",
}
DEFAULT_THEME_COLOR = "0078D4"


class TeamsWebhookNotificationProvider(WebhookNotificationProvider):
    """Posts a MessageCard to a Teams channel.

    Serves the webhook channel after the generic webhook provider, so it is
    used when no generic webhook URL can be resolved.
    """

    def __init__(self, client: httpx.AsyncClient, teams_webhook_url: str | None = None) -> None:
        super().__init__(client, default_url=teams_webhook_url)

    @property
    def name(self) -> str:
        return "TeamsWebhook"

    @property
    def priority(self) -> int:
        return 21

    def resolve_url(self, notification: Notification) -> str | None:
        url = notification.get_metadata_value(TEAMS_URL_METADATA_KEY)
        if url:
            return str(url)
        return self._default_url

    def build_payload(self, notification: Notification) -> dict[str, Any]:
        section: dict[str, Any] = {
            "activityTitle": notification.title,
            "activitySubtitle": f"Priority: {notification.priority.name.title()}",
            "text": notification.message,
            "facts": self._facts(notification),
        }
        if notification.image_url:
            section["activityImage"] = notification.image_url

        card: dict[str, Any] = {
            "@type": "MessageCard",
            "@context": "https://schema.org/extensions",
            "summary": notification.title,
            "themeColor": THEME_COLORS.get(notification.type, DEFAULT_THEME_COLOR),
            "sections": [section],
        }
        if notification.action_url:
            card["potentialAction"] = [
                {
                    "@type": "OpenUri",
                    "name": "View Details",
                    "targets": [{"os": "default", "uri": notification.action_url}],
                }
            ]
        return card

    def _facts(self, notification: Notification) -> list[dict[str, str]]:
        facts = [
            {"name": "Type", "value": notification.type.value.title()},
            {"name": "Priority", "value": notification.priority.name.title()},
        ]
        if notification.category:
            facts.append({"name": "Category", "value": notification.category})
        if notification.recipient_user_id:
            facts.append({"name": "Recipient", "value": notification.recipient_user_id})
        facts.append(
            {
                "name": "Timestamp",
                "value": notification.created_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
            }
        )
        return facts
