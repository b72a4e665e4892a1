"""Notification domain entities and enums."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum, IntFlag, StrEnum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Channel(IntFlag):
    """Delivery channels as a bit set; combine with ``|`` and ``&``."""

    NONE = 0
    IN_APP = 1
    EMAIL = 2
    PUSH = 4
    WEBHOOK = 8
    ALL = IN_APP | EMAIL | PUSH | WEBHOOK

    def members(self) -> list["Channel"]:
        """Split into single-bit channels, lowest bit first."""
        return [c for c in SINGLE_CHANNELS if c & self]


SINGLE_CHANNELS: tuple[Channel, ...] = (
    Channel.IN_APP,
    Channel.EMAIL,
    Channel.PUSH,
    Channel.WEBHOOK,
)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Normalise to the naive UTC datetimes stored in the database.

    Aware values are converted to UTC; naive values are taken as UTC already.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class NotificationPriority(IntEnum):
    """Ordered priority levels; compared numerically against preference floors."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


class NotificationType(StrEnum):
    """Cosmetic notification kind."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class NotificationStatus(StrEnum):
    """Lifecycle states.

    PENDING -> DELIVERED -> READ, or QUEUED -> DELIVERED -> READ for scheduled
    notifications. Marking read is allowed from any state.
    """

    PENDING = "pending"
    QUEUED = "queued"
    DELIVERED = "delivered"
    READ = "read"


@dataclass
class RecipientContact:
    """Channel contact data resolved from the recipient's preference.

    Attached to a Notification for the duration of one dispatch; never persisted
    on the notification row.
    """

    email: str | None = None
    phone: str | None = None
    webhook_url: str | None = None
    push_endpoint: str | None = None
    push_public_key: str | None = None
    push_auth: str | None = None

    @property
    def has_push_subscription(self) -> bool:
        return bool(self.push_endpoint and self.push_public_key and self.push_auth)


@dataclass
class Notification:
    """Domain entity for one delivery intent."""

    title: str
    message: str
    id: UUID = field(default_factory=uuid4)
    type: NotificationType = NotificationType.INFO
    priority: NotificationPriority = NotificationPriority.NORMAL
    category: str | None = None
    channels: Channel = Channel.IN_APP
    recipient_user_id: str | None = None
    recipient_email: str | None = None
    recipient_phone: str | None = None
    sender_user_id: str | None = None
    tenant_id: str | None = None
    status: NotificationStatus = NotificationStatus.PENDING
    scheduled_for: datetime | None = None
    delivered_at: datetime | None = None
    read_at: datetime | None = None
    expires_at: datetime | None = None
    delivery_attempts: int = 0
    error_message: str | None = None
    metadata: dict[str, Any] | None = None
    action_url: str | None = None
    image_url: str | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    modified_at: datetime | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None

    # Per-dispatch state, not persisted.
    effective_channels: Channel = field(default=Channel.NONE, compare=False, repr=False)
    contact: RecipientContact | None = field(default=None, compare=False, repr=False)

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def mark_read(self, now: datetime) -> bool:
        """Set read state. Returns False when it was already read."""
        if self.read_at is not None:
            return False
        self.read_at = now
        self.status = NotificationStatus.READ
        self.modified_at = now
        return True

    def get_metadata_value(self, key: str) -> Any | None:
        if not self.metadata:
            return None
        return self.metadata.get(key)


@dataclass
class NotificationDeliveryLog:
    """Immutable record of one delivery attempt on one channel."""

    notification_id: UUID
    channel: Channel
    attempt_number: int
    is_success: bool
    provider_name: str | None = None
    error_message: str | None = None
    provider_response: str | None = None
    duration_ms: int = 0
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class NotificationPreference:
    """Per-user (optionally per-category) delivery preference."""

    user_id: str
    category: str | None = None
    id: UUID = field(default_factory=uuid4)
    tenant_id: str | None = None
    enabled_channels: Channel = Channel.IN_APP
    is_enabled: bool = True
    minimum_priority: NotificationPriority = NotificationPriority.LOW
    email: str | None = None
    phone: str | None = None
    push_endpoint: str | None = None
    push_public_key: str | None = None
    push_auth: str | None = None
    webhook_url: str | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    modified_at: datetime | None = None

    def is_channel_enabled(self, channel: Channel) -> bool:
        return self.is_enabled and bool(self.enabled_channels & channel)

    def to_contact(self) -> RecipientContact:
        return RecipientContact(
            email=self.email,
            phone=self.phone,
            webhook_url=self.webhook_url,
            push_endpoint=self.push_endpoint,
            push_public_key=self.push_public_key,
            push_auth=self.push_auth,
        )


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Read-only value object: outcome of one provider send."""

    is_success: bool
    channel: Channel
    provider_name: str | None = None
    error_message: str | None = None
    provider_response: str | None = None
    duration_ms: int = 0

    @classmethod
    def success(
        cls,
        channel: Channel,
        provider_name: str | None = None,
        provider_response: str | None = None,
        duration_ms: int = 0,
    ) -> "DeliveryResult":
        return cls(
            is_success=True,
            channel=channel,
            provider_name=provider_name,
            provider_response=provider_response,
            duration_ms=duration_ms,
        )

    @classmethod
    def failure(
        cls,
        channel: Channel,
        error_message: str,
        provider_name: str | None = None,
        duration_ms: int = 0,
    ) -> "DeliveryResult":
        return cls(
            is_success=False,
            channel=channel,
            provider_name=provider_name,
            error_message=error_message,
            duration_ms=duration_ms,
        )


class NotificationRequest(BaseModel):
    """Caller-facing request used to build a Notification."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    type: NotificationType = NotificationType.INFO
    priority: NotificationPriority = NotificationPriority.NORMAL
    channels: Channel = Channel.IN_APP
    category: str | None = Field(None, max_length=100)
    recipient_user_id: str | None = Field(None, max_length=450)
    recipient_email: str | None = Field(None, max_length=256)
    recipient_phone: str | None = Field(None, max_length=50)
    sender_user_id: str | None = Field(None, max_length=450)
    tenant_id: str | None = Field(None, max_length=100)
    action_url: str | None = Field(None, max_length=500)
    image_url: str | None = Field(None, max_length=500)
    expires_at: datetime | None = None
    metadata: dict[str, Any] | None = None

    @field_validator("channels", mode="before")
    @classmethod
    def coerce_channels(cls, v: Any) -> Channel:
        """Accept composite bit values such as ``IN_APP | EMAIL`` given as plain ints."""
        return Channel(int(v))

    @field_validator("expires_at")
    @classmethod
    def normalise_expires_at(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v)

    def to_notification(self, recipient_user_id: str | None = None) -> Notification:
        """Build a fresh Notification; ``recipient_user_id`` overrides the request's."""
        return Notification(
            title=self.title,
            message=self.message,
            type=self.type,
            priority=self.priority,
            channels=self.channels,
            category=self.category,
            recipient_user_id=recipient_user_id or self.recipient_user_id,
            recipient_email=self.recipient_email,
            recipient_phone=self.recipient_phone,
            sender_user_id=self.sender_user_id,
            tenant_id=self.tenant_id,
            action_url=self.action_url,
            image_url=self.image_url,
            expires_at=self.expires_at,
            metadata=dict(self.metadata) if self.metadata is not None else None,
        )
