"""Error taxonomy for the Ordering domain.

Validation and not-found conditions reuse Protean's exception types so that
they read the same as every other aggregate rule violation. Failures of the
catalogue lookup pipeline live in their own hierarchy because they are
produced outside any unit of work.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------
class CartNotFound(ObjectNotFoundError):
    """No cart exists with the given identifier."""


class ItemNotFound(ObjectNotFoundError):
    """No cart item exists with the given identifier."""


class PaymentNotFound(ObjectNotFoundError):
    """No payment matches the given identifier or transaction id."""


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------
class Forbidden(Exception):
    """The requesting owner does not own the target cart."""


# ---------------------------------------------------------------------------
# Payment preconditions
# ---------------------------------------------------------------------------
class EmptyCart(ValidationError):
    """Checkout was attempted on a cart without items."""


class DuplicatePayment(ValidationError):
    """A payment already exists for the cart."""


class CheckoutInProgress(ValidationError):
    """The cart cannot change while its payment is being processed."""


# ---------------------------------------------------------------------------
# Catalogue lookup pipeline
# ---------------------------------------------------------------------------
class EnrichmentError(Exception):
    """Base class for failures while fetching catalogue data for a cart item."""

    def __init__(self, message: str, external_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.external_id = external_id


class LookupFailure(EnrichmentError):
    """The catalogue answered with an error payload."""


class LookupTimeout(EnrichmentError):
    """No correlated response arrived before the lookup deadline."""


class LookupCancelled(EnrichmentError):
    """The lookup was abandoned because the process is shutting down."""


class PublishError(EnrichmentError):
    """The lookup request could not be handed to the message bus."""


class ServiceUnavailable(EnrichmentError):
    """The catalogue item exists but is not active."""


class ItemUnavailable(EnrichmentError):
    """The item cannot be added to a cart because it is not available."""


class DuplicateIdError(Exception):
    """A correlation id was registered twice."""
