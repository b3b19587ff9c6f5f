"""Message bus port (abstract interface).

The Ordering domain talks to the outside world through named channels. It
publishes lookup requests to the catalogue service and cart/payment
lifecycle events for whoever listens, and consumes the catalogue's
responses. Transports (Kafka, Redis Streams, ...) are configured outside
this package and plugged in behind this contract.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any


class BusError(Exception):
    """The transport rejected a message."""


class MessageBus(ABC):
    """Abstract message bus interface."""

    @abstractmethod
    def publish(self, channel: str, payload: dict[str, Any]) -> None:
        """Hand ``payload`` to the transport for ``channel``.

        Raises ``BusError`` when the transport refuses the message
        synchronously.
        """
        ...

    @abstractmethod
    def subscribe(self, channel: str, subscriber: Callable[[Any], Any]) -> None:
        """Call ``subscriber`` with every message that arrives on ``channel``.

        Adapters may invoke subscribers on their own consumer threads.
        """
        ...
