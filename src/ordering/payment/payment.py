"""Payment aggregate — one settlement attempt per cart.

State Machine:
    PENDING → COMPLETED
    PENDING → FAILED

Both outcomes are terminal. A payment is never reopened, and a cart that
already has a payment (of any status) cannot be checked out again.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text

from ordering.domain import ordering
from ordering.payment.events import PaymentCompleted, PaymentFailed, PaymentInitiated


class PaymentStatus(Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class PaymentMethod(Enum):
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"


_VALID_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: set(),  # Terminal
    PaymentStatus.FAILED: set(),  # Terminal
}


def mask_card_number(card_number: str | None) -> str | None:
    """Keep only the last four digits of a card number."""
    if card_number is None or len(card_number) < 4:
        return card_number
    return "**** **** **** " + card_number[-4:]


@ordering.aggregate
class Payment:
    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    method = String(max_length=20, choices=PaymentMethod, required=True)
    status = String(max_length=20, choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=255)
    message = Text()
    card_number = String(max_length=32)
    card_holder_name = String(max_length=255)
    processed_at = DateTime()
    created_at = DateTime()

    @classmethod
    def initiate(cls, cart_id, owner_id, amount, method, card_number, card_holder_name):
        """Open a PENDING payment. Only the masked card number is kept."""
        now = datetime.now(UTC)
        payment = cls(
            cart_id=cart_id,
            owner_id=owner_id,
            amount=amount,
            method=method,
            status=PaymentStatus.PENDING.value,
            card_number=mask_card_number(card_number),
            card_holder_name=card_holder_name,
            created_at=now,
        )
        payment.raise_(
            PaymentInitiated(
                payment_id=str(payment.id),
                cart_id=str(cart_id),
                owner_id=str(owner_id),
                amount=amount,
                method=method,
                initiated_at=now,
            )
        )
        return payment

    def _assert_can_transition(self, target: PaymentStatus) -> None:
        current = PaymentStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

    def complete(self, transaction_id, message=None, processed_at=None):
        self._assert_can_transition(PaymentStatus.COMPLETED)
        if not transaction_id:
            raise ValidationError({"transaction_id": ["A completed payment needs a transaction id"]})

        processed_at = processed_at or datetime.now(UTC)
        self.status = PaymentStatus.COMPLETED.value
        self.transaction_id = transaction_id
        self.message = message
        self.processed_at = processed_at

        self.raise_(
            PaymentCompleted(
                payment_id=str(self.id),
                cart_id=str(self.cart_id),
                owner_id=str(self.owner_id),
                amount=self.amount,
                transaction_id=transaction_id,
                processed_at=processed_at,
            )
        )

    def fail(self, message, processed_at=None, transaction_id=None):
        self._assert_can_transition(PaymentStatus.FAILED)

        processed_at = processed_at or datetime.now(UTC)
        self.status = PaymentStatus.FAILED.value
        self.transaction_id = transaction_id
        self.message = message
        self.processed_at = processed_at

        self.raise_(
            PaymentFailed(
                payment_id=str(self.id),
                cart_id=str(self.cart_id),
                owner_id=str(self.owner_id),
                amount=self.amount,
                reason=message,
                processed_at=processed_at,
            )
        )
