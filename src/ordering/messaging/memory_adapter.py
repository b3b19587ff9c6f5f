"""In-process message bus for development and testing.

Messages are recorded per channel and delivered synchronously to any
subscribers registered for that channel. A configurable failure switch lets
tests exercise the publish-error paths.
"""

from collections import defaultdict
from collections.abc import Callable
from typing import Any

from ordering.messaging.port import BusError, MessageBus

Subscriber = Callable[[dict[str, Any]], None]


class InMemoryBus(MessageBus):
    """Configurable in-memory message bus."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, dict[str, Any]]] = []
        self.should_fail: bool = False
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)

    def configure(self, should_fail: bool) -> None:
        """Make subsequent publishes succeed or raise ``BusError``."""
        self.should_fail = should_fail

    def subscribe(self, channel: str, subscriber: Subscriber) -> None:
        self._subscribers[channel].append(subscriber)

    def publish(self, channel: str, payload: dict[str, Any]) -> None:
        if self.should_fail:
            raise BusError(f"Channel {channel} is unavailable")

        self.messages.append((channel, payload))
        for subscriber in list(self._subscribers[channel]):
            subscriber(payload)

    def of_channel(self, channel: str) -> list[dict[str, Any]]:
        return [payload for name, payload in self.messages if name == channel]

    def clear(self) -> None:
        self.messages.clear()
