"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.cart import shopping
from ordering.cart.management import find_active_cart, get_or_create_active_cart
from ordering.exceptions import EnrichmentError
from pytest_bdd import given, parsers, then, when


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the exception raised by the last When step."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the catalogue offers "{service_id}" at {price:f}'))
def catalogue_offers(catalogue, service_id, price):
    catalogue.add(service_id, price=price)


@given(parsers.cfparse('owner "{owner_id}" has added {qty:d} of "{service_id}"'))
def owner_has_added(catalogue, owner_id, qty, service_id):
    shopping.add_item(owner_id, service_id, qty)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('owner "{owner_id}" adds {qty:d} of "{service_id}"'))
def owner_adds(catalogue, owner_id, qty, service_id, error):
    try:
        shopping.add_item(owner_id, service_id, qty)
    except EnrichmentError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.re(r'the cart of "(?P<owner_id>[^"]+)" has (?P<count>\d+) lines?'))
def cart_has_lines(owner_id, count):
    assert len(get_or_create_active_cart(owner_id).items) == int(count)


@then(parsers.cfparse('the cart total of "{owner_id}" is {total:f}'))
def cart_total_is(owner_id, total):
    assert find_active_cart(owner_id).total_amount == pytest.approx(total)
