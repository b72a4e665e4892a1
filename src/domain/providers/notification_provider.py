"""Notification provider protocol."""

from typing import Protocol

from domain.entities.notification import Channel, DeliveryResult, Notification


class INotificationProvider(Protocol):
    """A delivery implementation for exactly one channel.

    ``send`` reports ordinary delivery failures through a failed
    DeliveryResult. Anything it raises is converted to a failure by the
    dispatcher.
    """

    @property
    def channel(self) -> Channel:
        """The single channel this provider serves."""
        ...

    @property
    def name(self) -> str:
        """Human-readable provider name, recorded on delivery logs."""
        ...

    @property
    def priority(self) -> int:
        """Lower values are tried first among providers of the same channel."""
        ...

    def can_deliver(self, notification: Notification) -> bool:
        """Cheap precondition check, e.g. the required contact field is present."""
        ...

    async def send(self, notification: Notification) -> DeliveryResult:
        """Deliver the notification over this provider's channel."""
        ...
