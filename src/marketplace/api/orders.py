"""FastAPI routes for the buyer: checkout, order history, cancellation and returns."""

from fastapi import APIRouter, Depends, Header, Query, Response
from protean.utils.globals import current_domain

from marketplace import notices
from marketplace.api.actors import ActingUser, current_user
from marketplace.api.schemas import (
    CancelOrderRequest,
    OrderResponse,
    Page,
    PlaceOrderRequest,
    RequestReturnRequest,
    ReturnResponse,
)
from marketplace.checkout.placement import PlaceOrder
from marketplace.order.cancellation import CancelOrder
from marketplace.order.order import Order
from marketplace.order.state_machine import parse_order_status
from marketplace.returns.return_request import ReturnRequest
from marketplace.returns.workflow import RequestReturn
from marketplace.utils.locking import cart_key, order_key, process_exclusively

order_router = APIRouter(prefix="/me/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
def place_order(
    body: PlaceOrderRequest,
    response: Response,
    user: ActingUser = Depends(current_user),
    idempotency_key: str | None = Header(default=None),
) -> OrderResponse:
    """Check out a cart.

    The response is 201 for every outcome that produced an order, including
    a declined payment (``status == "payment_failed"``). Repeating a request
    with the same ``Idempotency-Key`` returns the original order.
    """
    command = PlaceOrder(
        buyer_id=user.user_id,
        cart_id=body.cart_id,
        shipping_address_id=body.shipping_address_id,
        billing_address_id=body.billing_address_id,
        payment_method_id=body.payment_method_id,
        shipping_method=body.shipping_method,
        notes_by_buyer=body.notes_by_buyer,
        discount_code=body.discount_code,
        idempotency_key=idempotency_key,
    )
    result = process_exclusively(
        command,
        cart_key(cart_id=body.cart_id, buyer_id=None if body.cart_id else user.user_id),
        f"checkout:{user.user_id}",
    )

    order = current_domain.repository_for(Order).get(result["order_id"])
    if result["replayed"]:
        response.headers["Idempotent-Replayed"] = "true"
    else:
        notices.order_placed(order)
    return OrderResponse.from_order(order)


@order_router.get("", response_model=Page[OrderResponse])
def list_my_orders(
    user: ActingUser = Depends(current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str | None = None,
) -> Page[OrderResponse]:
    if status:
        parse_order_status(status)
    orders, total = current_domain.repository_for(Order).list_for_buyer(
        user.user_id, page=page, limit=limit, status=status
    )
    return Page[OrderResponse].of([OrderResponse.from_order(o) for o in orders], page, limit, total)


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_my_order(order_id: str, user: ActingUser = Depends(current_user)) -> OrderResponse:
    order = current_domain.repository_for(Order).get_for_buyer(order_id, user.user_id)
    return OrderResponse.from_order(order)


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_my_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    user: ActingUser = Depends(current_user),
) -> OrderResponse:
    command = CancelOrder(order_id=order_id, buyer_id=user.user_id, reason=body.reason if body else None)
    result = process_exclusively(command, order_key(order_id))

    order = current_domain.repository_for(Order).get(order_id)
    notices.order_status_changed(order, result["from_status"], actor="buyer")
    return OrderResponse.from_order(order)


@order_router.post("/{order_id}/returns", status_code=202, response_model=ReturnResponse)
def request_return(
    order_id: str,
    body: RequestReturnRequest,
    user: ActingUser = Depends(current_user),
) -> ReturnResponse:
    command = RequestReturn(
        buyer_id=user.user_id,
        order_id=order_id,
        order_item_id=body.order_item_id,
        quantity=body.quantity,
        reason=body.reason,
    )
    return_id = process_exclusively(command, order_key(order_id))

    return_request = current_domain.repository_for(ReturnRequest).get(return_id)
    notices.return_requested(return_request)
    return ReturnResponse.from_return(return_request)
