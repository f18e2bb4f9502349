"""Cart management: anonymous cart creation and merge-on-login."""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.cart.items import resolve_addable_variant
from marketplace.cart.repository import load_cart
from marketplace.domain import marketplace
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@marketplace.command(part_of="ShoppingCart")
class CreateAnonymousCart:
    """Create an anonymous cart holding its first item."""

    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@marketplace.command(part_of="ShoppingCart")
class MergeAnonymousCart:
    buyer_id = Identifier(required=True)
    anonymous_cart_id = Identifier(required=True)


@marketplace.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(CreateAnonymousCart)
    def create_anonymous_cart(self, command):
        variant = resolve_addable_variant(command.product_id, command.variant_id, command.quantity)

        cart = ShoppingCart.create()
        cart.add_item(
            product_id=command.product_id,
            variant_id=command.variant_id,
            quantity=command.quantity,
            unit_price=variant.price,
            currency=variant.currency,
            product_name=variant.product_name,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        logger.info("Anonymous cart created", cart_id=str(cart.id))
        return str(cart.id)

    @handle(MergeAnonymousCart)
    def merge_anonymous_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        anonymous = load_cart(cart_id=command.anonymous_cart_id)
        buyer_cart = load_cart(buyer_id=command.buyer_id, create=True)

        merged = buyer_cart.absorb(anonymous)
        repo.add(anonymous)
        repo.add(buyer_cart)

        logger.info(
            "Anonymous cart merged",
            cart_id=str(buyer_cart.id),
            source_cart_id=str(anonymous.id),
            items_merged=merged,
        )
        return str(buyer_cart.id)
