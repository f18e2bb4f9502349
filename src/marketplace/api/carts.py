"""FastAPI routes for anonymous carts and the authenticated buyer's cart."""

from fastapi import APIRouter, Depends
from protean.exceptions import ObjectNotFoundError

from marketplace.api.actors import ActingUser, current_user
from marketplace.api.schemas import (
    CartItemRequest,
    CartResponse,
    MergeCartRequest,
    MergeCartResponse,
    UpdateCartItemRequest,
)
from marketplace.cart.items import AddCartItem, ClearCart, RemoveCartItem, UpdateCartItemQuantity
from marketplace.cart.management import CreateAnonymousCart, MergeAnonymousCart
from marketplace.cart.repository import load_cart
from marketplace.utils.locking import cart_key, process_exclusively
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _buyer_cart_response(buyer_id) -> CartResponse:
    cart = load_cart(buyer_id=buyer_id)
    return CartResponse.from_cart(cart) if cart else CartResponse.empty(buyer_id)


# ---------------------------------------------------------------------------
# Anonymous cart router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartResponse)
def create_anonymous_cart(body: CartItemRequest) -> CartResponse:
    command = CreateAnonymousCart(
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    cart_id = process_exclusively(command)
    return CartResponse.from_cart(load_cart(cart_id=cart_id))


@cart_router.post("/{cart_id}/items", response_model=CartResponse)
def add_anonymous_cart_item(cart_id: str, body: CartItemRequest) -> CartResponse:
    command = AddCartItem(
        cart_id=cart_id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    process_exclusively(command, cart_key(cart_id=cart_id))
    return CartResponse.from_cart(load_cart(cart_id=cart_id))


@cart_router.get("/{cart_id}", response_model=CartResponse)
def view_anonymous_cart(cart_id: str) -> CartResponse:
    return CartResponse.from_cart(load_cart(cart_id=cart_id))


@cart_router.put("/{cart_id}/items/{item_id}", response_model=CartResponse)
def update_anonymous_cart_item(cart_id: str, item_id: str, body: UpdateCartItemRequest) -> CartResponse:
    command = UpdateCartItemQuantity(cart_id=cart_id, item_id=item_id, quantity=body.quantity)
    process_exclusively(command, cart_key(cart_id=cart_id))
    return CartResponse.from_cart(load_cart(cart_id=cart_id))


@cart_router.delete("/{cart_id}/items/{item_id}", response_model=CartResponse)
def remove_anonymous_cart_item(cart_id: str, item_id: str) -> CartResponse:
    process_exclusively(RemoveCartItem(cart_id=cart_id, item_id=item_id), cart_key(cart_id=cart_id))
    return CartResponse.from_cart(load_cart(cart_id=cart_id))


@cart_router.delete("/{cart_id}", response_model=CartResponse)
def clear_anonymous_cart(cart_id: str) -> CartResponse:
    process_exclusively(ClearCart(cart_id=cart_id), cart_key(cart_id=cart_id))
    return CartResponse.from_cart(load_cart(cart_id=cart_id))


# ---------------------------------------------------------------------------
# Buyer cart router
# ---------------------------------------------------------------------------
my_cart_router = APIRouter(prefix="/me/cart", tags=["carts"])


@my_cart_router.get("", response_model=CartResponse)
def view_my_cart(user: ActingUser = Depends(current_user)) -> CartResponse:
    return _buyer_cart_response(user.user_id)


@my_cart_router.post("/items", response_model=CartResponse)
def add_my_cart_item(body: CartItemRequest, user: ActingUser = Depends(current_user)) -> CartResponse:
    command = AddCartItem(
        buyer_id=user.user_id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    process_exclusively(command, cart_key(buyer_id=user.user_id))
    return _buyer_cart_response(user.user_id)


@my_cart_router.put("/items/{item_id}", response_model=CartResponse)
def update_my_cart_item(
    item_id: str, body: UpdateCartItemRequest, user: ActingUser = Depends(current_user)
) -> CartResponse:
    command = UpdateCartItemQuantity(buyer_id=user.user_id, item_id=item_id, quantity=body.quantity)
    process_exclusively(command, cart_key(buyer_id=user.user_id))
    return _buyer_cart_response(user.user_id)


@my_cart_router.delete("/items/{item_id}", response_model=CartResponse)
def remove_my_cart_item(item_id: str, user: ActingUser = Depends(current_user)) -> CartResponse:
    process_exclusively(RemoveCartItem(buyer_id=user.user_id, item_id=item_id), cart_key(buyer_id=user.user_id))
    return _buyer_cart_response(user.user_id)


@my_cart_router.delete("", response_model=CartResponse)
def clear_my_cart(user: ActingUser = Depends(current_user)) -> CartResponse:
    process_exclusively(ClearCart(buyer_id=user.user_id), cart_key(buyer_id=user.user_id))
    return _buyer_cart_response(user.user_id)


@my_cart_router.post("/merge-anonymous", response_model=MergeCartResponse)
def merge_anonymous_cart(body: MergeCartRequest, user: ActingUser = Depends(current_user)) -> MergeCartResponse:
    """Fold an anonymous cart into the buyer's cart.

    A cart that was already merged no longer resolves; that case is answered
    as a successful no-op so clients can safely retry.
    """
    command = MergeAnonymousCart(buyer_id=user.user_id, anonymous_cart_id=body.anonymous_cart_id)
    try:
        process_exclusively(
            command,
            cart_key(buyer_id=user.user_id),
            cart_key(cart_id=body.anonymous_cart_id),
        )
        merged = True
    except ObjectNotFoundError:
        logger.info("Anonymous cart already merged or missing", cart_id=body.anonymous_cart_id)
        merged = False

    return MergeCartResponse(cart=_buyer_cart_response(user.user_id), merged=merged)
