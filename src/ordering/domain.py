"""Ordering bounded context — Shopping Cart, Catalogue Lookups and Payments.

Handles the per-owner shopping cart (CQRS), the asynchronous catalogue
lookup pipeline that enriches cart items, and the payment state machine
that settles a cart at checkout.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
