"""Payment queries."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.exceptions import PaymentNotFound
from ordering.payment.payment import Payment, PaymentStatus


def _payments_matching(**filters) -> list[Payment]:
    return current_domain.repository_for(Payment)._dao.query.filter(**filters).all().items


def load_payment(payment_id) -> Payment:
    try:
        return current_domain.repository_for(Payment).get(str(payment_id))
    except ObjectNotFoundError as exc:
        raise PaymentNotFound({"payment_id": [f"Payment {payment_id} does not exist"]}) from exc


def payment_for_cart(cart_id) -> Payment | None:
    """The payment attempted for a cart, if any. A cart has at most one."""
    payments = _payments_matching(cart_id=str(cart_id))
    return payments[0] if payments else None


def has_pending_payment(cart_id) -> bool:
    payment = payment_for_cart(cart_id)
    return payment is not None and payment.status == PaymentStatus.PENDING.value


def payment_history(owner_id) -> list[Payment]:
    """Every payment of an owner, newest first."""
    payments = _payments_matching(owner_id=str(owner_id))
    return sorted(payments, key=lambda p: p.created_at, reverse=True)


def find_by_transaction_id(transaction_id) -> Payment:
    payments = _payments_matching(transaction_id=str(transaction_id))
    if not payments:
        raise PaymentNotFound({"transaction_id": [f"No payment with transaction id {transaction_id}"]})
    return payments[0]
