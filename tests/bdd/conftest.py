"""Shared BDD fixtures and step definitions for the marketplace."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from marketplace.errors import ConflictError, ForbiddenError
from marketplace.order.order import Order


@pytest.fixture()
def context():
    """Scenario state: the current order/return ids and the last captured error."""
    return {"order_id": None, "return_id": None, "exc": None}


@pytest.fixture()
def attempt(context):
    """Run a step action, keeping any domain error for the Then steps."""

    def run(fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (ValidationError, ConflictError, ForbiddenError) as exc:
            context["exc"] = exc
            return None

    return run


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse(
        'variant "{variant_id}" of product "{product_id}" sold by "{seller_id}" '
        "costs {price:f} with {stock:d} in stock"
    )
)
def catalog_variant(shop, variant_id, product_id, seller_id, price, stock):
    shop.variant(product_id, variant_id, seller_id=seller_id, price=price, stock=stock)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(context, status):
    order = current_domain.repository_for(Order).get(context["order_id"])
    assert order.status == status


@then("the change is rejected as a conflict")
def rejected_as_conflict(context):
    assert isinstance(context["exc"], ConflictError)


@then("the change is forbidden")
def change_forbidden(context):
    assert isinstance(context["exc"], ForbiddenError)


@then("the request is rejected as invalid")
def rejected_as_invalid(context):
    assert isinstance(context["exc"], ValidationError)
