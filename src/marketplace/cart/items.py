"""Cart item management: commands and handler.

Every command addresses a cart either by anonymous ``cart_id`` or by
``buyer_id``. A buyer's cart is created by the first item added to it.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.cart.repository import load_cart
from marketplace.collaborators.catalog import get_catalog
from marketplace.domain import marketplace
from marketplace.utils.resilience import call_collaborator


def resolve_addable_variant(product_id, variant_id, quantity):
    """Look up a variant for adding to a cart. Unknown or inactive variants are rejected."""
    variant = call_collaborator("catalog", get_catalog().resolve_variant, str(product_id), str(variant_id))
    if variant is None or not variant.is_active:
        raise ValidationError({"variant_id": [f"Product {product_id} variant {variant_id} is not available"]})
    if variant.stock < quantity:
        raise ValidationError({"quantity": [f"Insufficient stock for variant {variant_id}. Available: {variant.stock}"]})
    return variant


@marketplace.command(part_of="ShoppingCart")
class AddCartItem:
    cart_id = Identifier()
    buyer_id = Identifier()
    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@marketplace.command(part_of="ShoppingCart")
class UpdateCartItemQuantity:
    cart_id = Identifier()
    buyer_id = Identifier()
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@marketplace.command(part_of="ShoppingCart")
class RemoveCartItem:
    cart_id = Identifier()
    buyer_id = Identifier()
    item_id = Identifier(required=True)


@marketplace.command(part_of="ShoppingCart")
class ClearCart:
    cart_id = Identifier()
    buyer_id = Identifier()


@marketplace.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddCartItem)
    def add_cart_item(self, command):
        cart = load_cart(cart_id=command.cart_id, buyer_id=command.buyer_id, create=True)

        existing = next((i for i in cart.items if i.matches(command.product_id, command.variant_id)), None)
        in_cart = existing.quantity if existing else 0
        variant = resolve_addable_variant(command.product_id, command.variant_id, in_cart + command.quantity)

        cart.add_item(
            product_id=command.product_id,
            variant_id=command.variant_id,
            quantity=command.quantity,
            unit_price=variant.price,
            currency=variant.currency,
            product_name=variant.product_name,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(UpdateCartItemQuantity)
    def update_cart_item_quantity(self, command):
        cart = load_cart(cart_id=command.cart_id, buyer_id=command.buyer_id)
        if cart is None:
            raise ObjectNotFoundError({"item_id": [f"Item {command.item_id} not found in cart"]})

        cart.update_item_quantity(command.item_id, command.quantity)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(RemoveCartItem)
    def remove_cart_item(self, command):
        cart = load_cart(cart_id=command.cart_id, buyer_id=command.buyer_id)
        if cart is None:
            raise ObjectNotFoundError({"item_id": [f"Item {command.item_id} not found in cart"]})

        cart.remove_item(command.item_id)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = load_cart(cart_id=command.cart_id, buyer_id=command.buyer_id)
        if cart is None:
            return None

        cart.clear()
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)
