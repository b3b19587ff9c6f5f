"""Outbound cart and payment lifecycle notifications.

These are fire-and-forget: a transport failure is logged and swallowed so
that it never undoes or fails the business operation that triggered it.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog

from ordering.config import load_settings
from ordering.messaging import get_bus

logger = structlog.get_logger(__name__)


class CartEventType(Enum):
    ITEM_ADDED = "ITEM_ADDED"
    ITEM_UPDATED = "ITEM_UPDATED"
    ITEM_REMOVED = "ITEM_REMOVED"
    CART_CLEARED = "CART_CLEARED"


class PaymentEventType(Enum):
    PAYMENT_INITIATED = "PAYMENT_INITIATED"
    PAYMENT_SUCCESS = "PAYMENT_SUCCESS"
    PAYMENT_FAILED = "PAYMENT_FAILED"


def _publish_quietly(channel: str, payload: dict[str, Any]) -> bool:
    try:
        get_bus().publish(channel, payload)
    except Exception:
        logger.error(
            "Failed to publish lifecycle event",
            channel=channel,
            event_type=payload.get("eventType"),
            exc_info=True,
        )
        return False

    logger.info("Lifecycle event published", channel=channel, event_type=payload["eventType"])
    return True


def publish_cart_event(
    event_type: CartEventType,
    cart_id: str,
    owner_id: str,
    external_id: str | None = None,
    service_name: str | None = None,
    service_category: str | None = None,
    service_price: float | None = None,
    quantity: int | None = None,
    amount: float | None = None,
) -> bool:
    """Publish a cart lifecycle event. Returns ``False`` if the bus refused it."""
    payload = {
        "eventType": event_type.value,
        "cartId": str(cart_id),
        "ownerId": owner_id,
        "externalId": external_id,
        "serviceName": service_name,
        "serviceCategory": service_category,
        "servicePrice": service_price,
        "quantity": quantity,
        "amount": amount,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return _publish_quietly(load_settings().cart_event_channel, payload)


def publish_payment_event(
    event_type: PaymentEventType,
    payment_id: str,
    cart_id: str,
    owner_id: str,
    amount: float,
    card_number: str | None = None,
    error_message: str | None = None,
) -> bool:
    """Publish a payment lifecycle event. Returns ``False`` if the bus refused it."""
    status = {
        PaymentEventType.PAYMENT_INITIATED: "PENDING",
        PaymentEventType.PAYMENT_SUCCESS: "SUCCESS",
        PaymentEventType.PAYMENT_FAILED: "FAILED",
    }[event_type]

    payload = {
        "eventType": event_type.value,
        "paymentId": str(payment_id),
        "cartId": str(cart_id),
        "ownerId": owner_id,
        "amount": amount,
        "cardNumber": card_number,
        "status": status,
        "errorMessage": error_message,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return _publish_quietly(load_settings().payment_event_channel, payload)
