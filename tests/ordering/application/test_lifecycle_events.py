"""Tests for fire-and-forget lifecycle event publishing."""

from ordering.messaging.lifecycle import (
    CartEventType,
    PaymentEventType,
    publish_cart_event,
    publish_payment_event,
)


class TestCartEvents:
    def test_payload(self, bus):
        assert publish_cart_event(
            CartEventType.ITEM_ADDED,
            cart_id="cart-001",
            owner_id="u1",
            external_id="svc-A",
            service_name="Logo design",
            service_category="Design",
            service_price=100.0,
            quantity=2,
            amount=200.0,
        )

        channel, payload = bus.messages[0]
        assert channel == "cart.events"
        assert payload["eventType"] == "ITEM_ADDED"
        assert payload["cartId"] == "cart-001"
        assert payload["serviceCategory"] == "Design"
        assert payload["amount"] == 200.0
        assert payload["timestamp"]

    def test_bus_failure_is_swallowed(self, bus):
        bus.configure(should_fail=True)
        assert publish_cart_event(CartEventType.CART_CLEARED, cart_id="cart-001", owner_id="u1") is False
        assert bus.messages == []


class TestPaymentEvents:
    def test_status_follows_event_type(self, bus):
        for event_type in PaymentEventType:
            publish_payment_event(event_type, payment_id="pay-1", cart_id="cart-1", owner_id="u1", amount=10.0)

        statuses = [payload["status"] for payload in bus.of_channel("payment.events")]
        assert statuses == ["PENDING", "SUCCESS", "FAILED"]

    def test_failure_carries_error_message(self, bus):
        publish_payment_event(
            PaymentEventType.PAYMENT_FAILED,
            payment_id="pay-1",
            cart_id="cart-1",
            owner_id="u1",
            amount=10.0,
            card_number="**** **** **** 1234",
            error_message="Card expired",
        )
        payload = bus.of_channel("payment.events")[0]
        assert payload["errorMessage"] == "Card expired"
        assert payload["cardNumber"] == "**** **** **** 1234"
