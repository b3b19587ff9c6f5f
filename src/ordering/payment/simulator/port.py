"""Payment simulator port (abstract interface).

Checkout hands the card details to a simulator and records whatever verdict
comes back. RandomSimulator stands in for a processor in running
environments; FakeSimulator gives tests a predictable one.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class PaymentRequest:
    """Card details submitted at checkout."""

    method: str
    card_number: str | None
    card_holder_name: str | None
    expiry_month: str | None = None
    expiry_year: str | None = None
    cvv: str | None = None

    def has_valid_card(self) -> bool:
        if self.card_number is None or len(self.card_number.strip()) < 13:
            return False
        return bool(self.card_holder_name and self.card_holder_name.strip())


@dataclass(frozen=True)
class SimulationResult:
    """Verdict of one simulated charge."""

    success: bool
    transaction_id: str | None = None
    message: str | None = None
    processed_at: datetime | None = None


class PaymentSimulator(ABC):
    """Abstract payment simulator interface."""

    @abstractmethod
    def simulate(self, request: PaymentRequest, amount: float) -> SimulationResult:
        """Charge ``amount`` against the card in ``request``."""
        ...
