"""Application tests for cart item management commands."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.cart.cart import ShoppingCart
from marketplace.cart.items import AddCartItem, ClearCart, RemoveCartItem, UpdateCartItemQuantity
from marketplace.cart.management import CreateAnonymousCart
from marketplace.cart.repository import load_cart
from marketplace.errors import ServiceUnavailableError


@pytest.fixture(autouse=True)
def variants(catalog):
    catalog.add_variant("P1", "V1", "seller-1", 25.0, stock=10, product_name="Mug")
    catalog.add_variant("P2", "V2", "seller-2", 5.5, stock=3)
    catalog.add_variant("P3", "V3", "seller-1", 9.0, is_active=False)
    return catalog


def _add(**kwargs):
    return current_domain.process(AddCartItem(**kwargs), asynchronous=False)


class TestCreateAnonymousCart:
    def test_creates_cart_holding_first_item(self):
        cart_id = current_domain.process(
            CreateAnonymousCart(product_id="P1", variant_id="V1", quantity=2),
            asynchronous=False,
        )
        cart = current_domain.repository_for(ShoppingCart).get(cart_id)

        assert cart.is_anonymous
        assert len(cart.items) == 1
        assert cart.items[0].unit_price == 25.0
        assert cart.items[0].product_name == "Mug"

    def test_unknown_variant_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                CreateAnonymousCart(product_id="P9", variant_id="V9", quantity=1),
                asynchronous=False,
            )
        assert "variant_id" in exc.value.messages

    def test_inactive_variant_is_rejected(self):
        with pytest.raises(ValidationError):
            current_domain.process(
                CreateAnonymousCart(product_id="P3", variant_id="V3", quantity=1),
                asynchronous=False,
            )


class TestAddCartItem:
    def test_first_add_creates_buyer_cart(self):
        _add(buyer_id="buyer-001", product_id="P1", variant_id="V1", quantity=1)

        cart = load_cart(buyer_id="buyer-001")
        assert cart is not None
        assert str(cart.buyer_id) == "buyer-001"
        assert cart.total_quantity == 1

    def test_buyer_has_a_single_cart(self):
        first = _add(buyer_id="buyer-001", product_id="P1", variant_id="V1", quantity=1)
        second = _add(buyer_id="buyer-001", product_id="P2", variant_id="V2", quantity=1)

        assert first == second
        assert len(load_cart(buyer_id="buyer-001").items) == 2

    def test_repeated_add_increments_quantity(self):
        _add(buyer_id="buyer-001", product_id="P1", variant_id="V1", quantity=2)
        _add(buyer_id="buyer-001", product_id="P1", variant_id="V1", quantity=3)

        cart = load_cart(buyer_id="buyer-001")
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5

    def test_stock_check_counts_quantity_already_in_cart(self):
        _add(buyer_id="buyer-001", product_id="P2", variant_id="V2", quantity=2)

        with pytest.raises(ValidationError) as exc:
            _add(buyer_id="buyer-001", product_id="P2", variant_id="V2", quantity=2)

        assert "quantity" in exc.value.messages
        assert load_cart(buyer_id="buyer-001").items[0].quantity == 2

    def test_add_to_anonymous_cart(self):
        cart_id = current_domain.process(
            CreateAnonymousCart(product_id="P1", variant_id="V1", quantity=1),
            asynchronous=False,
        )
        _add(cart_id=cart_id, product_id="P2", variant_id="V2", quantity=1)

        assert len(load_cart(cart_id=cart_id).items) == 2

    def test_unknown_anonymous_cart(self):
        with pytest.raises(ObjectNotFoundError):
            _add(cart_id="no-such-cart", product_id="P1", variant_id="V1", quantity=1)

    def test_catalog_outage_surfaces_as_unavailable(self, catalog):
        catalog.configure(available=False)

        with pytest.raises(ServiceUnavailableError):
            _add(buyer_id="buyer-001", product_id="P1", variant_id="V1", quantity=1)

        assert load_cart(buyer_id="buyer-001") is None


class TestUpdateRemoveClear:
    @pytest.fixture
    def item_id(self):
        _add(buyer_id="buyer-001", product_id="P1", variant_id="V1", quantity=2)
        return str(load_cart(buyer_id="buyer-001").items[0].id)

    def test_update_quantity(self, item_id):
        current_domain.process(
            UpdateCartItemQuantity(buyer_id="buyer-001", item_id=item_id, quantity=4),
            asynchronous=False,
        )
        assert load_cart(buyer_id="buyer-001").items[0].quantity == 4

    def test_update_for_buyer_without_cart(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(
                UpdateCartItemQuantity(buyer_id="buyer-404", item_id="x", quantity=4),
                asynchronous=False,
            )

    def test_update_to_zero_is_rejected_by_command(self, item_id):
        with pytest.raises(ValidationError):
            UpdateCartItemQuantity(buyer_id="buyer-001", item_id=item_id, quantity=0)

    def test_remove_item(self, item_id):
        current_domain.process(RemoveCartItem(buyer_id="buyer-001", item_id=item_id), asynchronous=False)
        assert len(load_cart(buyer_id="buyer-001").items) == 0

    def test_remove_unknown_item(self, item_id):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(RemoveCartItem(buyer_id="buyer-001", item_id="missing"), asynchronous=False)

    def test_clear_cart(self, item_id):
        _add(buyer_id="buyer-001", product_id="P2", variant_id="V2", quantity=1)
        current_domain.process(ClearCart(buyer_id="buyer-001"), asynchronous=False)

        cart = load_cart(buyer_id="buyer-001")
        assert cart is not None
        assert len(cart.items) == 0

    def test_clear_without_cart_is_a_no_op(self):
        assert current_domain.process(ClearCart(buyer_id="buyer-404"), asynchronous=False) is None
