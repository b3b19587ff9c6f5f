"""Shopping Cart aggregate (CQRS) — one active cart per owner, settled by a payment.

The cart is a standard CQRS aggregate (not event sourced). It tracks the
catalogue items an owner has selected, merging repeated additions of the
same external item into a single line, and carries a copy of the catalogue
data for each line so that totals can be computed without calling the
catalogue again. Once its payment succeeds the cart is completed and frozen.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from ordering.cart.events import (
    CartCleared,
    CartCompleted,
    CartCreated,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartItemsEnriched,
)
from ordering.domain import ordering
from ordering.exceptions import ItemNotFound

DESCRIPTION_MAX_LENGTH = 1000
DEFAULT_CATEGORY = "General"


class CartStatus(Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


def truncate_description(description: str | None) -> str | None:
    """Clip a catalogue description to the stored length, marking the cut with an ellipsis."""
    if description is None or len(description) <= DESCRIPTION_MAX_LENGTH:
        return description
    return description[: DESCRIPTION_MAX_LENGTH - 3] + "..."


@ordering.entity(part_of="Cart")
class CartItem:
    external_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True)
    title = Text()
    description = Text()
    category = String(max_length=255)
    image_url = Text()
    rating = Float()
    added_at = DateTime()

    @property
    def subtotal(self) -> float:
        return self.quantity * (self.unit_price or 0.0)


@ordering.aggregate
class Cart:
    owner_id = Identifier(required=True)
    items = HasMany(CartItem)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def completed_cart_must_have_items(self):
        if self.status == CartStatus.COMPLETED.value and not self.items:
            raise ValidationError({"cart": ["A completed cart must contain items"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner_id):
        now = datetime.now(UTC)
        cart = cls(
            owner_id=owner_id,
            status=CartStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        cart.raise_(CartCreated(cart_id=str(cart.id), owner_id=str(owner_id), created_at=now))
        return cart

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return self.status == CartStatus.ACTIVE.value

    @property
    def total_amount(self) -> float:
        return sum(item.subtotal for item in self.items)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def find_item(self, item_id):
        return next((i for i in self.items if str(i.id) == str(item_id)), None)

    def item_for(self, external_id):
        return next((i for i in self.items if str(i.external_id) == str(external_id)), None)

    def _assert_active(self, action: str) -> None:
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": [f"Items can only be {action} an active cart"]})

    def _get_item(self, item_id):
        item = self.find_item(item_id)
        if item is None:
            raise ItemNotFound({"item_id": [f"Item {item_id} not found in cart"]})
        return item

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(
        self,
        external_id,
        quantity,
        unit_price,
        title=None,
        description=None,
        category=None,
        image_url=None,
        rating=None,
    ):
        """Add a catalogue item, or increase the quantity of the line already holding it.

        Catalogue fields are only used when a new line is created; merging
        into an existing line changes nothing but its quantity.
        """
        self._assert_active("added to")
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        existing = self.item_for(external_id)

        if existing:
            existing.quantity += quantity
            item = existing
        else:
            item = CartItem(
                external_id=external_id,
                quantity=quantity,
                unit_price=unit_price,
                title=title,
                description=truncate_description(description),
                category=category or DEFAULT_CATEGORY,
                image_url=image_url,
                rating=rating,
                added_at=now,
            )
            self.add_items(item)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                external_id=str(external_id),
                quantity=quantity,
                new_quantity=item.quantity,
                unit_price=item.unit_price,
            )
        )
        return item

    def update_item_quantity(self, item_id, new_quantity):
        """Set the quantity of an existing cart item."""
        self._assert_active("updated in")
        if new_quantity is None or new_quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        item = self._get_item(item_id)
        previous_quantity = item.quantity
        item.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item.id),
                external_id=str(item.external_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )
        return item

    def remove_item(self, item_id):
        """Remove an item from the cart."""
        self._assert_active("removed from")

        item = self._get_item(item_id)
        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item.id),
                external_id=str(item.external_id),
            )
        )
        return item

    def clear(self):
        """Remove every item from the cart. Returns how many lines were removed."""
        self._assert_active("removed from")

        removed = list(self.items)
        for item in removed:
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), items_removed=len(removed)))
        return len(removed)

    # -------------------------------------------------------------------
    # Enrichment
    # -------------------------------------------------------------------
    def apply_snapshot(
        self,
        external_id,
        unit_price,
        title=None,
        description=None,
        category=None,
        image_url=None,
        rating=None,
    ):
        """Overwrite the catalogue fields of every line holding ``external_id``.

        Quantities are left untouched. Returns the number of lines updated;
        a cart without a matching line is left unchanged.
        """
        matching = [i for i in self.items if str(i.external_id) == str(external_id)]
        if not matching:
            return 0

        for item in matching:
            item.title = title
            item.description = truncate_description(description)
            if unit_price is not None:
                item.unit_price = unit_price
            item.rating = rating
            item.category = category or DEFAULT_CATEGORY
            item.image_url = image_url

        self.raise_(
            CartItemsEnriched(
                cart_id=str(self.id),
                external_id=str(external_id),
                items_updated=len(matching),
            )
        )
        return len(matching)

    # -------------------------------------------------------------------
    # Cart lifecycle
    # -------------------------------------------------------------------
    def complete(self):
        """Mark the cart as paid. Irreversible."""
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": ["Only active carts can be completed"]})
        if not self.items:
            raise ValidationError({"cart": ["Cannot complete an empty cart"]})

        now = datetime.now(UTC)
        self.status = CartStatus.COMPLETED.value
        self.updated_at = now

        self.raise_(
            CartCompleted(
                cart_id=str(self.id),
                owner_id=str(self.owner_id),
                total_amount=self.total_amount,
                completed_at=now,
            )
        )
