"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer

from ordering.domain import ordering


@ordering.event(part_of="Cart")
class CartCreated:
    """A new active cart was opened for an owner."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    created_at = DateTime(required=True)


@ordering.event(part_of="Cart")
class CartItemAdded:
    """A catalogue item was added to the cart, or its quantity was increased."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    external_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    unit_price = Float(required=True)


@ordering.event(part_of="Cart")
class CartItemQuantityUpdated:
    """The quantity of a cart item was set to a new value."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    external_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartItemRemoved:
    """An item was removed from the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    external_id = Identifier(required=True)


@ordering.event(part_of="Cart")
class CartCleared:
    """All items were removed from the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    items_removed = Integer(required=True)


@ordering.event(part_of="Cart")
class CartItemsEnriched:
    """Fresh catalogue data was copied onto the cart's items for one external id."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    external_id = Identifier(required=True)
    items_updated = Integer(required=True)


@ordering.event(part_of="Cart")
class CartCompleted:
    """The cart was paid for and can no longer change."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    total_amount = Float(required=True)
    completed_at = DateTime(required=True)
