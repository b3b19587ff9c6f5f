"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddItemRequest(BaseModel):
    service_id: str
    quantity: int = 1

    model_config = {
        "json_schema_extra": {
            "examples": [{"service_id": "svc-A", "quantity": 2}],
        }
    }


class UpdateQuantityRequest(BaseModel):
    quantity: int

    model_config = {
        "json_schema_extra": {
            "examples": [{"quantity": 3}],
        }
    }


# ---------------------------------------------------------------------------
# Payment Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    cart_id: str
    method: str
    card_number: str | None = None
    card_holder_name: str | None = None
    expiry_month: str | None = None
    expiry_year: str | None = None
    cvv: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "cart_id": "c0a8e6d2-8f1e-4b8e-9d7a-3a3c5c1f0b11",
                    "method": "CREDIT_CARD",
                    "card_number": "4111111111111111",
                    "card_holder_name": "Ada Lovelace",
                    "expiry_month": "12",
                    "expiry_year": "2030",
                    "cvv": "123",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartItemSchema(BaseModel):
    id: str
    service_id: str
    title: str | None = None
    description: str | None = None
    category: str | None = None
    image_url: str | None = None
    rating: float | None = None
    unit_price: float
    quantity: int
    subtotal: float


class AvailableServiceSchema(BaseModel):
    service_id: str
    title: str | None = None
    description: str | None = None
    price: float | None = None
    category: str | None = None
    image_url: str | None = None
    rating: float | None = None
    country_name: str | None = None
    country_code: str | None = None


class CartResponse(BaseModel):
    id: str
    owner_id: str
    status: str
    items: list[CartItemSchema]
    total_amount: float
    total_items: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PaymentResponse(BaseModel):
    payment_id: str | None = None
    transaction_id: str | None = None
    status: str
    amount: float
    message: str | None = None
    processed_at: datetime | None = None


class PaymentHistoryEntry(BaseModel):
    id: str
    cart_id: str
    transaction_id: str | None = None
    amount: float
    method: str
    status: str
    card_holder_name: str | None = None
    masked_card_number: str | None = None
    processed_at: datetime | None = None
    message: str | None = None
    item_count: int = 0
    cart_created_at: datetime | None = None


class StatusResponse(BaseModel):
    status: str = "ok"
