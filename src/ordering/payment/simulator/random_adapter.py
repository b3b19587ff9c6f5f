"""Simulated payment processor.

Sleeps for a random processing delay, then approves the charge with
probability ``success_rate`` or declines it with a randomly chosen,
realistic reason.
"""

import random
import time
from datetime import UTC, datetime

import structlog

from ordering.payment.simulator.port import PaymentRequest, PaymentSimulator, SimulationResult

logger = structlog.get_logger(__name__)

FAILURE_REASONS = (
    "Insufficient funds",
    "Card expired",
    "Bank network error",
    "Transaction declined by issuer",
    "Transaction limit exceeded",
    "Card temporarily blocked",
    "Card data validation error",
    "Banking service unavailable",
)


class RandomSimulator(PaymentSimulator):
    def __init__(
        self,
        success_rate: float = 0.85,
        min_delay: float = 2.0,
        max_delay: float = 5.0,
        rng: random.Random | None = None,
        sleep=time.sleep,
    ) -> None:
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError("Delays must satisfy 0 <= min_delay <= max_delay")

        self.success_rate = success_rate
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._rng = rng or random.Random()
        self._sleep = sleep

    def _transaction_id(self) -> str:
        return f"TXN-{int(time.time() * 1000)}-{self._rng.randrange(10000)}"

    def simulate(self, request: PaymentRequest, amount: float) -> SimulationResult:
        delay = self._rng.uniform(self.min_delay, self.max_delay)
        logger.debug("Simulating payment", amount=amount, method=request.method, delay=round(delay, 2))
        self._sleep(delay)

        if self._rng.random() < self.success_rate:
            return SimulationResult(
                success=True,
                transaction_id=self._transaction_id(),
                message="Payment processed successfully",
                processed_at=datetime.now(UTC),
            )
        return SimulationResult(
            success=False,
            message=self._rng.choice(FAILURE_REASONS),
            processed_at=datetime.now(UTC),
        )
