import contextvars
import os
import threading
import time
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Selects the config overlay and the in-memory collaborator adapters before
    the marketplace domain is imported anywhere.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("NOTIFIER_ADAPTER", "fake")
    os.environ.setdefault("COLLABORATOR_RETRY_BACKOFF_SECONDS", "0")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(scope="session", autouse=True)
def setup_db(marketplace_bed):
    from marketplace.domain import marketplace
    from marketplace.utils.db import drop_db, setup_db

    setup_db(marketplace)

    yield

    drop_db(marketplace)


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    from marketplace.checkout.pricing import reset_calculators
    from marketplace.collaborators.address_book import reset_address_book
    from marketplace.collaborators.catalog import reset_catalog
    from marketplace.collaborators.notifications import reset_notifier
    from marketplace.collaborators.payments import reset_payments
    from marketplace.collaborators.promotions import reset_promotions

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    reset_catalog()
    reset_address_book()
    reset_payments()
    reset_promotions()
    reset_notifier()
    reset_calculators()


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------
@pytest.fixture
def catalog():
    from marketplace.collaborators.catalog import set_catalog
    from marketplace.collaborators.catalog.fake_adapter import FakeCatalog

    fake = FakeCatalog()
    set_catalog(fake)
    return fake


@pytest.fixture
def address_book():
    from marketplace.collaborators.address_book import set_address_book
    from marketplace.collaborators.address_book.fake_adapter import FakeAddressBook

    fake = FakeAddressBook()
    set_address_book(fake)
    return fake


@pytest.fixture
def payments():
    from marketplace.collaborators.payments import set_payments
    from marketplace.collaborators.payments.fake_adapter import FakePayments

    fake = FakePayments()
    set_payments(fake)
    return fake


@pytest.fixture
def promotions():
    from marketplace.collaborators.promotions import set_promotions
    from marketplace.collaborators.promotions.fake_adapter import FakePromotions

    fake = FakePromotions()
    set_promotions(fake)
    return fake


@pytest.fixture
def notifier():
    from marketplace.collaborators.notifications import set_notifier
    from marketplace.collaborators.notifications.fake_adapter import FakeNotifier

    fake = FakeNotifier()
    set_notifier(fake)
    return fake


# ---------------------------------------------------------------------------
# Scenario builder
# ---------------------------------------------------------------------------
class Shop:
    """Seeds collaborators and drives commands for tests that need placed orders."""

    def __init__(self, catalog, address_book, payments):
        self.catalog = catalog
        self.address_book = address_book
        self.payments = payments

    def variant(self, product_id="P1", variant_id="V1", seller_id="seller-1", price=100.0, stock=100, **kwargs):
        self.catalog.add_variant(product_id, variant_id, seller_id, price, stock=stock, **kwargs)
        return product_id, variant_id

    def address(self, buyer_id, city="Springfield", **kwargs):
        return self.address_book.save_address(
            buyer_id=buyer_id,
            address_line1="1 Main St",
            city=city,
            postal_code="12345",
            country="US",
            contact_name="Pat Buyer",
            **kwargs,
        )

    def payment_method(self, buyer_id):
        return self.payments.register_method(buyer_id).id

    def add_to_cart(self, buyer_id, product_id="P1", variant_id="V1", quantity=1):
        from protean import current_domain

        from marketplace.cart.items import AddCartItem

        return current_domain.process(
            AddCartItem(buyer_id=buyer_id, product_id=product_id, variant_id=variant_id, quantity=quantity),
            asynchronous=False,
        )

    def checkout(self, buyer_id, lines=(("P1", "V1", 1),), idempotency_key=None, **overrides):
        """Fill the buyer's cart with ``lines`` and place an order; returns the Order."""
        from protean import current_domain

        from marketplace.checkout.placement import PlaceOrder
        from marketplace.order.order import Order

        for product_id, variant_id, quantity in lines:
            self.add_to_cart(buyer_id, product_id, variant_id, quantity)

        params = {
            "buyer_id": buyer_id,
            "shipping_address_id": self.address(buyer_id),
            "payment_method_id": self.payment_method(buyer_id),
            "shipping_method": "standard",
            "idempotency_key": idempotency_key,
        }
        params.update(overrides)
        result = current_domain.process(PlaceOrder(**params), asynchronous=False)
        return current_domain.repository_for(Order).get(result["order_id"])

    def delivered_order(self, buyer_id, seller_id="seller-1", quantity=3):
        """Place an order and walk it to ``delivered`` through the seller."""
        from protean import current_domain

        from marketplace.order.fulfillment import UpdateOrderStatus
        from marketplace.order.order import Order

        self.variant(seller_id=seller_id)
        order = self.checkout(buyer_id, lines=(("P1", "V1", quantity),))
        current_domain.process(
            UpdateOrderStatus(order_id=order.id, seller_id=seller_id, status="shipped", tracking_number="TRK-1"),
            asynchronous=False,
        )
        current_domain.process(
            UpdateOrderStatus(order_id=order.id, seller_id=seller_id, status="delivered"),
            asynchronous=False,
        )
        return current_domain.repository_for(Order).get(order.id)


@pytest.fixture
def shop(catalog, address_book, payments):
    return Shop(catalog, address_book, payments)


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------
@pytest.fixture
def concurrently():
    """Start callables together on separate threads; returns ``(result, error)`` per callable.

    Every thread runs in its own copy of the test's context, so it sees the
    active domain while keeping a unit-of-work stack of its own.
    """

    def run(*calls, timeout=10):
        barrier = threading.Barrier(len(calls))
        outcomes = [None] * len(calls)

        def worker(index, call):
            barrier.wait()
            try:
                outcomes[index] = (call(), None)
            except Exception as exc:
                outcomes[index] = (None, exc)

        threads = [
            threading.Thread(target=contextvars.copy_context().run, args=(worker, index, call))
            for index, call in enumerate(calls)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout)
        return outcomes

    return run


@pytest.fixture
def slow_catalog(catalog, monkeypatch):
    """Catalog whose lookups take long enough for concurrent requests to overlap."""
    resolve = catalog.resolve_variant

    def slow_resolve(*args):
        time.sleep(0.05)
        return resolve(*args)

    monkeypatch.setattr(catalog, "resolve_variant", slow_resolve)
    return catalog
