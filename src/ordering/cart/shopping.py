"""Owner-facing cart operations.

These are the entry points used by the HTTP layer. Each one resolves the
owner's cart, runs exactly one cart command and announces the change on the
cart events channel. Adding an item is the only operation that needs
catalogue data; the lookup happens before the owner's lock is taken so that
a slow catalogue never blocks other requests from the same owner.

A cart whose payment is in flight is frozen: every operation here raises
``CheckoutInProgress`` until the payment settles.
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart, CartStatus
from ordering.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.management import (
    ensure_active_cart,
    ensure_cart_editable,
    find_active_cart,
    get_or_create_active_cart,
    load_cart,
    owner_locks,
)
from ordering.exceptions import Forbidden, ItemNotFound, ItemUnavailable, ServiceUnavailable
from ordering.lookup import get_lookup_client
from ordering.messaging.lifecycle import CartEventType, publish_cart_event

logger = structlog.get_logger(__name__)


def current_cart(owner_id) -> Cart:
    return get_or_create_active_cart(owner_id)


def add_item(owner_id, external_id, quantity) -> Cart:
    """Look up ``external_id`` in the catalogue and add it to the owner's active cart.

    Raises ``ItemUnavailable`` when the catalogue reports the item inactive or
    incomplete, and lets every other lookup failure propagate. Nothing is
    written to the cart unless the lookup succeeds.
    """
    if quantity is None or quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be at least 1"]})
    if not external_id or not str(external_id).strip():
        raise ValidationError({"external_id": ["Service id is required"]})

    owner_id = str(owner_id)
    external_id = str(external_id)
    get_or_create_active_cart(owner_id)

    result = get_lookup_client().request_info(external_id).wait()
    if not result.ok:
        logger.warning(
            "Service lookup failed",
            owner_id=owner_id,
            external_id=external_id,
            error=type(result.error).__name__,
        )
        if isinstance(result.error, ServiceUnavailable):
            raise ItemUnavailable(result.error.message, external_id=external_id) from result.error
        raise result.error

    snapshot = result.snapshot
    if not snapshot.is_valid_for_cart():
        raise ItemUnavailable(f"Service {external_id} has incomplete catalogue data", external_id=external_id)

    with owner_locks.hold(owner_id):
        # Re-resolve: the cart may have been paid for while the lookup was in flight
        cart = ensure_active_cart(owner_id)
        ensure_cart_editable(cart)
        current_domain.process(
            AddToCart(
                cart_id=str(cart.id),
                external_id=external_id,
                quantity=quantity,
                unit_price=snapshot.price,
                title=snapshot.title,
                description=snapshot.description,
                category=snapshot.category,
                image_url=snapshot.image_url,
                rating=snapshot.rating,
            ),
            asynchronous=False,
        )
        cart = load_cart(cart.id)

    item = cart.item_for(external_id)
    publish_cart_event(
        CartEventType.ITEM_ADDED,
        cart_id=str(cart.id),
        owner_id=owner_id,
        external_id=external_id,
        service_name=item.title,
        service_category=item.category,
        service_price=item.unit_price,
        quantity=quantity,
        amount=cart.total_amount,
    )
    return cart


def _other_active_carts(owner_id: str):
    records = current_domain.repository_for(Cart)._dao.query.filter(status=CartStatus.ACTIVE.value).all().items
    return (load_cart(record.id) for record in records if str(record.owner_id) != owner_id)


def _locate_item(owner_id: str, item_id) -> Cart:
    """Return the owner's ACTIVE cart if it holds ``item_id``.

    Other owners' carts are only searched when the item is not the owner's,
    to tell ``Forbidden`` apart from ``ItemNotFound``.
    """
    cart = find_active_cart(owner_id)
    if cart is not None and cart.find_item(item_id) is not None:
        return cart

    if any(other.find_item(item_id) is not None for other in _other_active_carts(owner_id)):
        raise Forbidden(f"Item {item_id} does not belong to the requesting owner")
    raise ItemNotFound({"item_id": [f"Item {item_id} not found in cart"]})


def update_quantity(owner_id, item_id, quantity) -> Cart:
    if quantity is None or quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be at least 1"]})

    owner_id = str(owner_id)
    with owner_locks.hold(owner_id):
        cart = _locate_item(owner_id, item_id)
        ensure_cart_editable(cart)
        current_domain.process(
            UpdateCartQuantity(cart_id=str(cart.id), item_id=str(item_id), new_quantity=quantity),
            asynchronous=False,
        )
        cart = load_cart(cart.id)

    item = cart.find_item(item_id)
    publish_cart_event(
        CartEventType.ITEM_UPDATED,
        cart_id=str(cart.id),
        owner_id=owner_id,
        external_id=str(item.external_id),
        service_name=item.title,
        service_category=item.category,
        service_price=item.unit_price,
        quantity=quantity,
        amount=cart.total_amount,
    )
    return cart


def remove_item(owner_id, item_id) -> Cart:
    owner_id = str(owner_id)
    with owner_locks.hold(owner_id):
        cart = _locate_item(owner_id, item_id)
        ensure_cart_editable(cart)
        item = cart.find_item(item_id)
        current_domain.process(
            RemoveFromCart(cart_id=str(cart.id), item_id=str(item_id)),
            asynchronous=False,
        )
        cart = load_cart(cart.id)

    publish_cart_event(
        CartEventType.ITEM_REMOVED,
        cart_id=str(cart.id),
        owner_id=owner_id,
        external_id=str(item.external_id),
        service_name=item.title,
        service_category=item.category,
        service_price=item.unit_price,
        quantity=item.quantity,
        amount=cart.total_amount,
    )
    return cart


def clear_cart(owner_id) -> Cart:
    """Empty the owner's active cart. The cart itself stays ACTIVE."""
    owner_id = str(owner_id)
    with owner_locks.hold(owner_id):
        cart = ensure_active_cart(owner_id)
        ensure_cart_editable(cart)
        removed = current_domain.process(ClearCart(cart_id=str(cart.id)), asynchronous=False)
        cart = load_cart(cart.id)

    logger.info("Cart cleared", cart_id=str(cart.id), owner_id=owner_id, items_removed=removed)
    publish_cart_event(
        CartEventType.CART_CLEARED,
        cart_id=str(cart.id),
        owner_id=owner_id,
        quantity=removed,
        amount=0.0,
    )
    return cart
