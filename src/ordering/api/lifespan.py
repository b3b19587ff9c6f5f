"""Startup and shutdown of the Ordering API process."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ordering.cart.enrichment import consume_responses
from ordering.lookup import get_lookup_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Lookups can only complete once the catalogue's answers are consumed
    consume_responses()
    yield
    # Release any request thread still waiting on the catalogue
    get_lookup_client().shutdown()
