"""Cart item enrichment from catalogue snapshots.

Every snapshot that reaches the response ingress, whether it answers one of
our lookups or is an unsolicited catalogue broadcast, is fanned out to the
ACTIVE carts that hold the item. Completed carts keep the data they were
paid with, and a cart whose payment is in flight is left as it was charged.
"""

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart, CartStatus
from ordering.cart.management import load_cart, owner_locks
from ordering.config import load_settings
from ordering.domain import ordering
from ordering.lookup import get_lookup_client
from ordering.lookup.ingress import ResponseIngress
from ordering.lookup.snapshot import ServiceSnapshot
from ordering.messaging import get_bus
from ordering.messaging.port import MessageBus
from ordering.payment.history import has_pending_payment

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Cart")
class ApplyServiceSnapshot:
    """Overwrite the catalogue data of every line holding ``external_id``."""

    cart_id = Identifier(required=True)
    external_id = Identifier(required=True)
    unit_price = Float()
    title = Text()
    description = Text()
    category = String(max_length=255)
    image_url = Text()
    rating = Float()


@ordering.command_handler(part_of=Cart)
class CartEnrichmentHandler:
    @handle(ApplyServiceSnapshot)
    def apply_service_snapshot(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        # Completed while the snapshot was in flight
        if not cart.is_active:
            return 0

        updated = cart.apply_snapshot(
            external_id=command.external_id,
            unit_price=command.unit_price,
            title=command.title,
            description=command.description,
            category=command.category,
            image_url=command.image_url,
            rating=command.rating,
        )
        if updated:
            repo.add(cart)
        return updated


def _carts_holding(external_id) -> list[Cart]:
    records = (
        current_domain.repository_for(Cart)._dao.query.filter(status=CartStatus.ACTIVE.value).all().items
    )
    carts = [load_cart(record.id) for record in records]
    return [cart for cart in carts if cart.item_for(external_id) is not None]


def apply_enrichment(snapshot: ServiceSnapshot) -> int:
    """Refresh every ACTIVE cart line holding the snapshot's item.

    Returns the number of cart lines updated. Error payloads carry no
    catalogue data and are ignored.
    """
    if not snapshot.external_id:
        return 0
    if snapshot.error_message:
        logger.debug("Error snapshot not applied to carts", external_id=snapshot.external_id)
        return 0

    updated = 0
    for cart in _carts_holding(snapshot.external_id):
        with owner_locks.hold(str(cart.owner_id)):
            if has_pending_payment(cart.id):
                logger.info("Cart has a payment in flight, not enriched", cart_id=str(cart.id))
                continue
            updated += current_domain.process(
                ApplyServiceSnapshot(
                    cart_id=str(cart.id),
                    external_id=snapshot.external_id,
                    unit_price=snapshot.price,
                    title=snapshot.title,
                    description=snapshot.description,
                    category=snapshot.category,
                    image_url=snapshot.image_url,
                    rating=snapshot.rating,
                ),
                asynchronous=False,
            )

    if updated:
        logger.info("Cart items enriched", external_id=snapshot.external_id, items_updated=updated)
    return updated


def response_ingress() -> ResponseIngress:
    """Ingress wired to the active lookup client's registry and directory, and to cart enrichment."""
    client = get_lookup_client()
    return ResponseIngress(client.registry, enrich=apply_enrichment, directory=client.directory)


def consume_responses(bus: MessageBus | None = None, channel: str | None = None) -> None:
    """Subscribe the response ingress to the channel the catalogue answers on.

    Bus consumers run outside any request, so each message is handled in its
    own domain context.
    """
    bus = bus if bus is not None else get_bus()
    channel = channel or load_settings().lookup_response_channel

    def _consume(raw):
        with ordering.domain_context():
            return response_ingress().handle(raw)

    bus.subscribe(channel, _consume)
    logger.info("Consuming catalogue responses", channel=channel)
