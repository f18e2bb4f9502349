"""Cart lookups by owner.

Anonymous carts are addressed by id (the token) and must still be active and
ownerless. Buyer carts are addressed by buyer id; a buyer has at most one
active cart, created on the first mutation.
"""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.cart.cart import CartStatus, ShoppingCart
from marketplace.domain import marketplace


@marketplace.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def find_for_buyer(self, buyer_id) -> ShoppingCart | None:
        carts = self._dao.query.filter(buyer_id=str(buyer_id), status=CartStatus.ACTIVE.value).all().items
        return carts[0] if carts else None

    def get_anonymous(self, cart_id) -> ShoppingCart:
        try:
            cart = self.get(cart_id)
        except ObjectNotFoundError:
            cart = None

        if cart is None or cart.buyer_id or cart.status != CartStatus.ACTIVE.value:
            raise ObjectNotFoundError({"cart_id": [f"Cart {cart_id} not found"]})
        return cart


def load_cart(cart_id=None, buyer_id=None, create=False) -> ShoppingCart | None:
    """Resolve a cart reference: an anonymous token or a buyer id.

    With ``create`` a buyer without a cart gets a new, not yet persisted one.
    """
    repo = current_domain.repository_for(ShoppingCart)
    if buyer_id:
        cart = repo.find_for_buyer(buyer_id)
        if cart is None and create:
            cart = ShoppingCart.create(buyer_id=str(buyer_id))
        return cart
    if not cart_id:
        raise ObjectNotFoundError({"cart_id": ["A cart id or buyer id is required"]})
    return repo.get_anonymous(cart_id)
