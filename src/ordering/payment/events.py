"""Domain events for the Payment aggregate."""

from protean.fields import DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Payment")
class PaymentInitiated:
    """A payment was opened for a cart and is awaiting the processor's verdict."""

    __version__ = "v1"

    payment_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    amount = Float(required=True)
    method = String(required=True)
    initiated_at = DateTime(required=True)


@ordering.event(part_of="Payment")
class PaymentCompleted:
    __version__ = "v1"

    payment_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    amount = Float(required=True)
    transaction_id = String(required=True)
    processed_at = DateTime(required=True)


@ordering.event(part_of="Payment")
class PaymentFailed:
    __version__ = "v1"

    payment_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    amount = Float(required=True)
    reason = Text()
    processed_at = DateTime(required=True)
