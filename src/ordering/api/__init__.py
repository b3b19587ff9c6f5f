"""Ordering domain API package."""

from ordering.api.lifespan import lifespan
from ordering.api.routes import cart_router, payment_router

__all__ = ["cart_router", "lifespan", "payment_router"]
