"""Cart management — commands, handler and per-owner cart lookup.

An owner has at most one ACTIVE cart. It is created lazily on first access
and completed once its payment succeeds; a new ACTIVE cart is opened on the
next access after that. Finding-or-creating the active cart is a critical
section per owner, so concurrent first requests from the same owner all
end up with the same cart.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart, CartStatus
from ordering.domain import ordering
from ordering.exceptions import CartNotFound, CheckoutInProgress, Forbidden
from ordering.payment.history import has_pending_payment
from ordering.utils.locks import KeyedLock

logger = structlog.get_logger(__name__)

# Serialises every mutation of an owner's carts.
owner_locks = KeyedLock()


@ordering.command(part_of="Cart")
class CreateCart:
    """Open a new active cart for an owner."""

    owner_id = Identifier(required=True)


@ordering.command(part_of="Cart")
class CompleteCart:
    """Mark a cart as paid."""

    cart_id = Identifier(required=True)


@ordering.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = Cart.create(owner_id=command.owner_id)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(CompleteCart)
    def complete_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.complete()
        repo.add(cart)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def load_cart(cart_id) -> Cart:
    """Fetch a cart by id, raising ``CartNotFound`` if it does not exist."""
    try:
        return current_domain.repository_for(Cart).get(str(cart_id))
    except ObjectNotFoundError as exc:
        raise CartNotFound({"cart_id": [f"Cart {cart_id} does not exist"]}) from exc


def carts_of(owner_id, status: CartStatus | None = None) -> list[Cart]:
    """All carts of an owner, newest first, optionally narrowed to one status."""
    filters = {"owner_id": str(owner_id)}
    if status is not None:
        filters["status"] = status.value

    records = current_domain.repository_for(Cart)._dao.query.filter(**filters).all().items
    carts = [load_cart(record.id) for record in records]
    return sorted(carts, key=lambda c: c.created_at, reverse=True)


def find_active_cart(owner_id) -> Cart | None:
    active = carts_of(owner_id, CartStatus.ACTIVE)
    if len(active) > 1:
        logger.error("Owner has more than one active cart", owner_id=str(owner_id), count=len(active))
    return active[0] if active else None


def ensure_active_cart(owner_id) -> Cart:
    """Find-or-create the owner's ACTIVE cart. The caller must hold the owner's lock."""
    cart = find_active_cart(owner_id)
    if cart is not None:
        return cart

    cart_id = current_domain.process(CreateCart(owner_id=str(owner_id)), asynchronous=False)
    logger.info("Cart created", cart_id=cart_id, owner_id=str(owner_id))
    return load_cart(cart_id)


def get_or_create_active_cart(owner_id) -> Cart:
    """Return the owner's ACTIVE cart, creating it on first access."""
    with owner_locks.hold(str(owner_id)):
        return ensure_active_cart(owner_id)


def ensure_cart_editable(cart: Cart) -> None:
    """Refuse to change a cart while its payment is in flight. The caller must hold the owner's lock."""
    if has_pending_payment(cart.id):
        raise CheckoutInProgress({"cart": [f"Cart {cart.id} has a payment in progress"]})


def validate_cart_ownership(cart_id, owner_id) -> Cart:
    """Load a cart and make sure it belongs to ``owner_id``."""
    cart = load_cart(cart_id)
    if str(cart.owner_id) != str(owner_id):
        raise Forbidden(f"Cart {cart_id} does not belong to the requesting owner")
    return cart


def cart_history(owner_id) -> list[Cart]:
    """Every cart an owner has had, active or completed, newest first."""
    return carts_of(owner_id)
