"""Application tests for idempotent checkout."""

import pytest
from protean import current_domain

from marketplace.checkout.placement import PlaceOrder, request_fingerprint
from marketplace.errors import ConflictError
from marketplace.order.order import Order

BUYER = "buyer-001"


@pytest.fixture
def command_args(shop):
    shop.variant()
    shop.add_to_cart(BUYER, quantity=2)
    return {
        "buyer_id": BUYER,
        "shipping_address_id": shop.address(BUYER),
        "payment_method_id": shop.payment_method(BUYER),
        "idempotency_key": "key-123",
    }


def _process(**kwargs):
    return current_domain.process(PlaceOrder(**kwargs), asynchronous=False)


class TestIdempotentCheckout:
    def test_replay_returns_the_same_order(self, command_args):
        first = _process(**command_args)
        second = _process(**command_args)

        assert first["replayed"] is False
        assert second == {"order_id": first["order_id"], "replayed": True}

    def test_replay_creates_no_second_order_or_charge(self, shop, command_args):
        _process(**command_args)
        _process(**command_args)

        _, total = current_domain.repository_for(Order).list_for_buyer(BUYER)
        assert total == 1
        assert shop.payments.authorization_count() == 1

    def test_replay_succeeds_after_cart_was_emptied(self, command_args):
        first = _process(**command_args)
        # The cart is empty now; a fresh checkout would be rejected
        assert _process(**command_args)["order_id"] == first["order_id"]

    def test_same_key_with_different_payload_conflicts(self, shop, command_args):
        _process(**command_args)
        command_args["shipping_method"] = "express"

        with pytest.raises(ConflictError) as exc:
            _process(**command_args)
        assert "idempotency_key" in exc.value.messages

    def test_keys_are_scoped_to_the_buyer(self, shop, command_args):
        first = _process(**command_args)

        shop.add_to_cart("buyer-002")
        second = _process(
            buyer_id="buyer-002",
            shipping_address_id=shop.address("buyer-002"),
            payment_method_id=shop.payment_method("buyer-002"),
            idempotency_key="key-123",
        )

        assert second["replayed"] is False
        assert second["order_id"] != first["order_id"]

    def test_payment_authorization_uses_buyer_scoped_key(self, shop, command_args):
        _process(**command_args)

        call = next(c for c in shop.payments.calls if c["method"] == "authorize")
        assert call["idempotency_key"] == f"{BUYER}:key-123"

    def test_declined_attempt_releases_the_key(self, shop, command_args):
        shop.payments.configure("declined")
        failed = _process(**command_args)

        shop.payments.configure("authorized")
        command_args["payment_method_id"] = shop.payment_method(BUYER)
        retried = _process(**command_args)

        assert retried["replayed"] is False
        assert retried["order_id"] != failed["order_id"]
        repo = current_domain.repository_for(Order)
        assert repo.get(failed["order_id"]).status == "payment_failed"
        assert repo.get(retried["order_id"]).status == "processing"
        assert repo.find_by_idempotency_key(BUYER, "key-123").id == retried["order_id"]

    def test_retry_after_decline_reaches_the_gateway_again(self, shop, command_args):
        shop.payments.configure("declined")
        _process(**command_args)
        shop.payments.configure("authorized")
        _process(**command_args)

        keys = [c["idempotency_key"] for c in shop.payments.calls if c["method"] == "authorize"]
        assert keys == [f"{BUYER}:key-123", f"{BUYER}:key-123:retry-1"]

    def test_successful_retry_then_holds_the_key(self, shop, command_args):
        shop.payments.configure("declined")
        _process(**command_args)
        shop.payments.configure("authorized")
        retried = _process(**command_args)

        assert _process(**command_args) == {"order_id": retried["order_id"], "replayed": True}
        assert shop.payments.authorization_count() == 2

    def test_without_key_every_request_creates_an_order(self, shop, command_args):
        command_args.pop("idempotency_key")
        _process(**command_args)
        shop.add_to_cart(BUYER)
        _process(**command_args)

        _, total = current_domain.repository_for(Order).list_for_buyer(BUYER)
        assert total == 2


class TestRequestFingerprint:
    def test_billing_defaults_to_shipping_in_fingerprint(self):
        implicit = PlaceOrder(buyer_id="b", shipping_address_id="a1", payment_method_id="pm")
        explicit = PlaceOrder(buyer_id="b", shipping_address_id="a1", billing_address_id="a1", payment_method_id="pm")
        assert request_fingerprint(implicit) == request_fingerprint(explicit)

    def test_different_payment_method_changes_fingerprint(self):
        one = PlaceOrder(buyer_id="b", shipping_address_id="a1", payment_method_id="pm-1")
        two = PlaceOrder(buyer_id="b", shipping_address_id="a1", payment_method_id="pm-2")
        assert request_fingerprint(one) != request_fingerprint(two)
