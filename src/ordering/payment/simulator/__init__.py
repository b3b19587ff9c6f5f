"""Payment simulator factory.

Provides get_simulator() / set_simulator() / reset_simulator() to swap implementations:
- RandomSimulator, configured from settings, by default
- FakeSimulator for testing
"""

from ordering.config import load_settings
from ordering.payment.simulator.port import PaymentSimulator
from ordering.payment.simulator.random_adapter import RandomSimulator

_current_simulator: PaymentSimulator | None = None


def get_simulator() -> PaymentSimulator:
    """Return the current payment simulator. Defaults to RandomSimulator."""
    global _current_simulator
    if _current_simulator is None:
        settings = load_settings()
        _current_simulator = RandomSimulator(
            success_rate=settings.payment_success_rate,
            min_delay=settings.payment_min_delay_seconds,
            max_delay=settings.payment_max_delay_seconds,
        )
    return _current_simulator


def set_simulator(simulator: PaymentSimulator) -> None:
    """Override the active payment simulator (useful for tests)."""
    global _current_simulator
    _current_simulator = simulator


def reset_simulator() -> None:
    """Reset to default simulator."""
    global _current_simulator
    _current_simulator = None
