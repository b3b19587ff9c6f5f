"""Configurable fake payment simulator for testing.

Answers immediately with a fixed verdict. It can also be told to raise, to
exercise the internal-error path, or to block until released, so that a
test can hold one checkout in flight while it starts another.
"""

import threading
from datetime import UTC, datetime
from uuid import uuid4

from ordering.payment.simulator.port import PaymentRequest, PaymentSimulator, SimulationResult


class FakeSimulator(PaymentSimulator):
    """Configurable fake payment simulator."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Insufficient funds"
        self.raises: Exception | None = None
        self.release: threading.Event | None = None
        self.entered = threading.Event()
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Insufficient funds",
        raises: Exception | None = None,
    ) -> None:
        """Configure simulator behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raises = raises

    def hold(self) -> threading.Event:
        """Make the next calls block until the returned event is set."""
        self.release = threading.Event()
        return self.release

    def simulate(self, request: PaymentRequest, amount: float) -> SimulationResult:
        self.calls.append(
            {
                "method": request.method,
                "card_holder_name": request.card_holder_name,
                "amount": amount,
            }
        )
        self.entered.set()
        if self.release is not None:
            self.release.wait(timeout=5)

        if self.raises is not None:
            raise self.raises

        if self.should_succeed:
            return SimulationResult(
                success=True,
                transaction_id=f"fake_txn_{uuid4().hex[:12]}",
                message="Payment processed successfully",
                processed_at=datetime.now(UTC),
            )
        return SimulationResult(
            success=False,
            message=self.failure_reason,
            processed_at=datetime.now(UTC),
        )
