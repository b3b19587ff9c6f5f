"""FastAPI routes for the Ordering domain — carts and payments.

The requesting owner is identified by the ``X-Owner-Id`` header, set by the
authentication gateway in front of this service. Handlers are plain
functions so that FastAPI runs them in its threadpool: adding an item and
checking out both block on external collaborators.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter, Header, HTTPException
from protean.exceptions import ObjectNotFoundError, ValidationError

from ordering.api.schemas import (
    AddItemRequest,
    AvailableServiceSchema,
    CartItemSchema,
    CartResponse,
    CheckoutRequest,
    PaymentHistoryEntry,
    PaymentResponse,
    UpdateQuantityRequest,
)
from ordering.cart import shopping
from ordering.cart.cart import Cart
from ordering.cart.management import cart_history, load_cart
from ordering.domain import ordering
from ordering.exceptions import (
    CartNotFound,
    CheckoutInProgress,
    DuplicatePayment,
    EnrichmentError,
    Forbidden,
    ItemUnavailable,
    LookupTimeout,
)
from ordering.lookup import get_lookup_client
from ordering.lookup.snapshot import ServiceSnapshot
from ordering.payment.checkout import checkout
from ordering.payment.history import find_by_transaction_id, payment_history
from ordering.payment.payment import Payment
from ordering.payment.simulator.port import PaymentRequest
from ordering.utils.logging import bound_context


@contextmanager
def _domain_call(owner_id: str) -> Iterator[None]:
    """Run a handler inside the domain context, translating domain errors to HTTP errors."""
    try:
        with bound_context(owner_id=owner_id), ordering.domain_context():
            yield
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.args[0] if exc.args else str(exc)) from exc
    except Forbidden as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except (DuplicatePayment, CheckoutInProgress) as exc:
        raise HTTPException(status_code=409, detail=exc.messages) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc
    except ItemUnavailable as exc:
        raise HTTPException(status_code=422, detail=exc.message) from exc
    except LookupTimeout as exc:
        raise HTTPException(status_code=504, detail=exc.message) from exc
    except EnrichmentError as exc:
        raise HTTPException(status_code=502, detail=exc.message) from exc


def _cart_response(cart: Cart) -> CartResponse:
    items = sorted(cart.items, key=lambda i: i.added_at)
    return CartResponse(
        id=str(cart.id),
        owner_id=str(cart.owner_id),
        status=cart.status,
        items=[
            CartItemSchema(
                id=str(item.id),
                service_id=str(item.external_id),
                title=item.title,
                description=item.description,
                category=item.category,
                image_url=item.image_url,
                rating=item.rating,
                unit_price=item.unit_price,
                quantity=item.quantity,
                subtotal=item.subtotal,
            )
            for item in items
        ],
        total_amount=cart.total_amount,
        total_items=cart.total_quantity,
        created_at=cart.created_at,
        updated_at=cart.updated_at,
    )


def _history_entry(payment: Payment) -> PaymentHistoryEntry:
    try:
        cart = load_cart(payment.cart_id)
    except CartNotFound:
        cart = None

    return PaymentHistoryEntry(
        id=str(payment.id),
        cart_id=str(payment.cart_id),
        transaction_id=payment.transaction_id,
        amount=payment.amount,
        method=payment.method,
        status=payment.status,
        card_holder_name=payment.card_holder_name,
        masked_card_number=payment.card_number,
        processed_at=payment.processed_at,
        message=payment.message,
        item_count=len(cart.items) if cart else 0,
        cart_created_at=cart.created_at if cart else None,
    )


def _available_service(snapshot: ServiceSnapshot) -> AvailableServiceSchema:
    return AvailableServiceSchema(
        service_id=snapshot.external_id,
        title=snapshot.title,
        description=snapshot.description,
        price=snapshot.price,
        category=snapshot.category,
        image_url=snapshot.image_url,
        rating=snapshot.rating,
        country_name=snapshot.country_name,
        country_code=snapshot.country_code,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
def get_cart(x_owner_id: str = Header()) -> CartResponse:
    with _domain_call(x_owner_id):
        return _cart_response(shopping.current_cart(x_owner_id))


@cart_router.post("/items", status_code=201, response_model=CartResponse)
def add_cart_item(body: AddItemRequest, x_owner_id: str = Header()) -> CartResponse:
    with _domain_call(x_owner_id):
        cart = shopping.add_item(x_owner_id, body.service_id, body.quantity)
        return _cart_response(cart)


@cart_router.get("/items/available", response_model=list[AvailableServiceSchema])
def list_available_services() -> list[AvailableServiceSchema]:
    """Services the catalogue has most recently reported as active."""
    return [_available_service(snapshot) for snapshot in get_lookup_client().directory.available()]


@cart_router.put("/items/{item_id}", response_model=CartResponse)
def update_cart_item(item_id: str, body: UpdateQuantityRequest, x_owner_id: str = Header()) -> CartResponse:
    with _domain_call(x_owner_id):
        cart = shopping.update_quantity(x_owner_id, item_id, body.quantity)
        return _cart_response(cart)


@cart_router.delete("/items/{item_id}", response_model=CartResponse)
def remove_cart_item(item_id: str, x_owner_id: str = Header()) -> CartResponse:
    with _domain_call(x_owner_id):
        return _cart_response(shopping.remove_item(x_owner_id, item_id))


@cart_router.delete("", response_model=CartResponse)
def clear_cart(x_owner_id: str = Header()) -> CartResponse:
    with _domain_call(x_owner_id):
        return _cart_response(shopping.clear_cart(x_owner_id))


@cart_router.get("/history", response_model=list[CartResponse])
def get_cart_history(x_owner_id: str = Header()) -> list[CartResponse]:
    with _domain_call(x_owner_id):
        return [_cart_response(cart) for cart in cart_history(x_owner_id)]


@cart_router.post("/checkout", response_model=PaymentResponse)
def checkout_cart(body: CheckoutRequest, x_owner_id: str = Header()) -> PaymentResponse:
    request = PaymentRequest(
        method=body.method,
        card_number=body.card_number,
        card_holder_name=body.card_holder_name,
        expiry_month=body.expiry_month,
        expiry_year=body.expiry_year,
        cvv=body.cvv,
    )
    with _domain_call(x_owner_id):
        outcome = checkout(x_owner_id, body.cart_id, request)
        return PaymentResponse(
            payment_id=outcome.payment_id,
            transaction_id=outcome.transaction_id,
            status=outcome.status,
            amount=outcome.amount,
            message=outcome.message,
            processed_at=outcome.processed_at,
        )


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.get("/history", response_model=list[PaymentHistoryEntry])
def get_payment_history(x_owner_id: str = Header()) -> list[PaymentHistoryEntry]:
    with _domain_call(x_owner_id):
        return [_history_entry(payment) for payment in payment_history(x_owner_id)]


@payment_router.get("/transactions/{transaction_id}", response_model=PaymentHistoryEntry)
def get_payment_by_transaction(transaction_id: str, x_owner_id: str = Header()) -> PaymentHistoryEntry:
    with _domain_call(x_owner_id):
        payment = find_by_transaction_id(transaction_id)
        if str(payment.owner_id) != x_owner_id:
            raise Forbidden(f"Transaction {transaction_id} does not belong to the requesting owner")
        return _history_entry(payment)
