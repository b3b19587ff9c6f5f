"""Message bus factory.

Provides get_bus() / set_bus() / reset_bus() to swap implementations:
- InMemoryBus for development and testing
- A transport adapter (Kafka, Redis Streams, ...) in deployed environments
"""

from ordering.messaging.memory_adapter import InMemoryBus
from ordering.messaging.port import MessageBus

_current_bus: MessageBus | None = None


def get_bus() -> MessageBus:
    """Return the current message bus. Defaults to InMemoryBus."""
    global _current_bus
    if _current_bus is None:
        _current_bus = InMemoryBus()
    return _current_bus


def set_bus(bus: MessageBus) -> None:
    """Override the active message bus (useful for tests)."""
    global _current_bus
    _current_bus = bus


def reset_bus() -> None:
    """Reset to default bus."""
    global _current_bus
    _current_bus = None
