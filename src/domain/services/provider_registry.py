"""Registry of channel providers.

Populated once during startup wiring and read concurrently afterwards.
Several providers may serve the same channel; they are kept ordered by
ascending priority so the dispatcher can fail over in order.
"""

from collections.abc import Iterable, Iterator

import structlog

from domain.entities.notification import SINGLE_CHANNELS, Channel
from domain.providers.notification_provider import INotificationProvider

logger = structlog.get_logger()


class ProviderRegistry:
    """Ordered collection of providers keyed by channel."""

    def __init__(self, providers: Iterable[INotificationProvider] = ()) -> None:
        self._providers: list[INotificationProvider] = []
        for provider in providers:
            self.register(provider)

    def register(self, provider: INotificationProvider) -> None:
        """Add a provider. Names must be unique; each provider serves one channel."""
        if provider.channel not in SINGLE_CHANNELS:
            raise ValueError(
                f"Provider {provider.name} must serve exactly one channel, got {provider.channel!r}"
            )
        if any(p.name == provider.name for p in self._providers):
            raise RuntimeError(f"Provider already registered with name: {provider.name}")

        self._providers.append(provider)
        self._providers.sort(key=lambda p: p.priority)
        logger.debug(
            "notification_provider_registered",
            provider=provider.name,
            channel=provider.channel.name,
            priority=provider.priority,
        )

    def for_channel(self, channel: Channel) -> list[INotificationProvider]:
        """Providers serving ``channel``, lowest priority value first."""
        return [p for p in self._providers if p.channel == channel]

    @property
    def channels(self) -> Channel:
        """Union of all channels with at least one provider."""
        covered = Channel.NONE
        for provider in self._providers:
            covered |= provider.channel
        return covered

    def __iter__(self) -> Iterator[INotificationProvider]:
        return iter(list(self._providers))

    def __len__(self) -> int:
        return len(self._providers)
