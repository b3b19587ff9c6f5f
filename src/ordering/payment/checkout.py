"""Checkout — settle an owner's cart with a single payment attempt.

Flow:
1. Under the cart's and the owner's locks: check the cart exists, belongs
   to the owner, has no payment yet and is not empty, then open a PENDING
   payment. From here until the verdict is recorded the cart is frozen.
2. Outside any lock: hand the card to the payment simulator.
3. Record the verdict. A successful payment completes the cart in the same
   unit of work; a failed one leaves the cart ACTIVE. A charge that no
   longer matches the cart is recorded as FAILED.

Malformed card data fails the checkout before anything is written.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.cart.management import owner_locks, validate_cart_ownership
from ordering.domain import ordering
from ordering.exceptions import DuplicatePayment, EmptyCart
from ordering.messaging.lifecycle import PaymentEventType, publish_payment_event
from ordering.payment.history import load_payment, payment_for_cart
from ordering.payment.payment import Payment, PaymentMethod, PaymentStatus
from ordering.payment.simulator import get_simulator
from ordering.payment.simulator.port import PaymentRequest, SimulationResult
from ordering.utils.locks import KeyedLock

logger = structlog.get_logger(__name__)

INVALID_CARD_MESSAGE = "Invalid card data"
INTERNAL_ERROR_MESSAGE = "Internal error while processing the payment"
CART_CHANGED_MESSAGE = "Cart changed while the payment was being processed"

# Serialises the payment check-then-create of each cart.
cart_locks = KeyedLock()


@dataclass(frozen=True)
class PaymentOutcome:
    """What the caller learns about a checkout."""

    payment_id: str | None
    transaction_id: str | None
    status: str
    amount: float
    message: str | None
    processed_at: datetime | None


@ordering.command(part_of="Payment")
class InitiatePayment:
    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    method = String(required=True, max_length=20)
    card_number = String(max_length=32)
    card_holder_name = String(max_length=255)


@ordering.command(part_of="Payment")
class RecordPaymentResult:
    """Record the processor's verdict on a PENDING payment."""

    payment_id = Identifier(required=True)
    succeeded = Boolean(required=True)
    transaction_id = String(max_length=255)
    message = Text()
    processed_at = DateTime()


@ordering.command_handler(part_of=Payment)
class PaymentHandler:
    @handle(InitiatePayment)
    def initiate_payment(self, command):
        payment = Payment.initiate(
            cart_id=command.cart_id,
            owner_id=command.owner_id,
            amount=command.amount,
            method=command.method,
            card_number=command.card_number,
            card_holder_name=command.card_holder_name,
        )
        current_domain.repository_for(Payment).add(payment)
        return str(payment.id)

    @handle(RecordPaymentResult)
    def record_payment_result(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        cart_repo = current_domain.repository_for(Cart)
        cart = cart_repo.get(payment.cart_id)

        succeeded, message = command.succeeded, command.message
        if succeeded and not _cart_matches_payment(payment, cart):
            logger.error(
                "Charged cart no longer matches its payment",
                payment_id=str(payment.id),
                cart_id=str(cart.id),
                cart_total=cart.total_amount,
                amount=payment.amount,
            )
            succeeded, message = False, CART_CHANGED_MESSAGE

        if succeeded:
            payment.complete(
                transaction_id=command.transaction_id,
                message=message,
                processed_at=command.processed_at,
            )
            cart.complete()
            cart_repo.add(cart)
        else:
            payment.fail(
                message=message,
                processed_at=command.processed_at,
                transaction_id=command.transaction_id,
            )

        repo.add(payment)


def _cart_matches_payment(payment: Payment, cart: Cart) -> bool:
    """The cart is still the one that was priced when the payment was opened."""
    return cart.is_active and bool(cart.items) and round(cart.total_amount, 2) == round(payment.amount, 2)


def _validate_method(method) -> None:
    if method not in {m.value for m in PaymentMethod}:
        raise ValidationError({"method": [f"Unsupported payment method {method}"]})


def _simulate(request: PaymentRequest, amount: float, payment_id: str) -> SimulationResult:
    try:
        return get_simulator().simulate(request, amount)
    except Exception:
        logger.error("Payment simulation raised", payment_id=payment_id, exc_info=True)
        return SimulationResult(
            success=False,
            message=INTERNAL_ERROR_MESSAGE,
            processed_at=datetime.now(UTC),
        )


def _record_result(payment_id: str, result: SimulationResult) -> None:
    current_domain.process(
        RecordPaymentResult(
            payment_id=payment_id,
            succeeded=result.success,
            transaction_id=result.transaction_id,
            message=result.message,
            processed_at=result.processed_at or datetime.now(UTC),
        ),
        asynchronous=False,
    )


def checkout(owner_id, cart_id, request: PaymentRequest) -> PaymentOutcome:
    """Attempt to pay for ``cart_id`` on behalf of ``owner_id``.

    Raises ``CartNotFound``, ``Forbidden``, ``DuplicatePayment`` or
    ``EmptyCart`` when the cart cannot be checked out. Declined and failed
    payments are not errors: they come back as a FAILED outcome.
    """
    owner_id = str(owner_id)
    cart_id = str(cart_id)
    _validate_method(request.method)

    # Cart lock before owner lock, always. The owner lock keeps the cart
    # unchanged between pricing it and opening the payment.
    with cart_locks.hold(cart_id), owner_locks.hold(owner_id):
        cart = validate_cart_ownership(cart_id, owner_id)
        if payment_for_cart(cart_id) is not None:
            raise DuplicatePayment({"cart_id": [f"A payment already exists for cart {cart_id}"]})
        if not cart.items:
            raise EmptyCart({"cart": ["Cannot check out an empty cart"]})

        amount = cart.total_amount
        if not request.has_valid_card():
            logger.warning("Checkout rejected: invalid card data", cart_id=cart_id, owner_id=owner_id)
            return PaymentOutcome(
                payment_id=None,
                transaction_id=None,
                status=PaymentStatus.FAILED.value,
                amount=amount,
                message=INVALID_CARD_MESSAGE,
                processed_at=datetime.now(UTC),
            )

        payment_id = current_domain.process(
            InitiatePayment(
                cart_id=cart_id,
                owner_id=owner_id,
                amount=amount,
                method=request.method,
                card_number=request.card_number,
                card_holder_name=request.card_holder_name,
            ),
            asynchronous=False,
        )

    payment = load_payment(payment_id)
    logger.info("Payment initiated", payment_id=payment_id, cart_id=cart_id, amount=amount)
    publish_payment_event(
        PaymentEventType.PAYMENT_INITIATED,
        payment_id=payment_id,
        cart_id=cart_id,
        owner_id=owner_id,
        amount=amount,
        card_number=payment.card_number,
    )

    result = _simulate(request, amount, payment_id)

    with owner_locks.hold(owner_id):
        try:
            _record_result(payment_id, result)
        except ValidationError:
            logger.error("Recording payment result failed", payment_id=payment_id, exc_info=True)
            _record_result(
                payment_id,
                SimulationResult(
                    success=False,
                    transaction_id=result.transaction_id,
                    message=INTERNAL_ERROR_MESSAGE,
                    processed_at=datetime.now(UTC),
                ),
            )

    payment = load_payment(payment_id)
    succeeded = payment.status == PaymentStatus.COMPLETED.value
    logger.info(
        "Payment settled",
        payment_id=payment_id,
        cart_id=cart_id,
        status=payment.status,
        transaction_id=payment.transaction_id,
    )
    publish_payment_event(
        PaymentEventType.PAYMENT_SUCCESS if succeeded else PaymentEventType.PAYMENT_FAILED,
        payment_id=payment_id,
        cart_id=cart_id,
        owner_id=owner_id,
        amount=amount,
        card_number=payment.card_number,
        error_message=None if succeeded else payment.message,
    )

    return PaymentOutcome(
        payment_id=payment_id,
        transaction_id=payment.transaction_id,
        status=payment.status,
        amount=payment.amount,
        message=payment.message,
        processed_at=payment.processed_at,
    )
