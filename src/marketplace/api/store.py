"""FastAPI routes for sellers: received orders, fulfilment and returns."""

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from marketplace import notices
from marketplace.api.actors import ActingUser, require_seller
from marketplace.api.schemas import (
    ItemStatusRequest,
    OrderResponse,
    Page,
    ReturnResponse,
    ReturnStatusRequest,
    SellerOrderStatusRequest,
)
from marketplace.order.fulfillment import UpdateOrderItemStatus, UpdateOrderStatus
from marketplace.order.order import Order
from marketplace.returns.return_request import ReturnRequest
from marketplace.returns.workflow import UpdateReturnStatus
from marketplace.utils.locking import order_key, process_exclusively, return_key

store_router = APIRouter(prefix="/me/store", tags=["store"])


@store_router.get("/orders", response_model=Page[OrderResponse])
def list_store_orders(
    user: ActingUser = Depends(require_seller),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str | None = None,
    buyer_id: str | None = Query(None, alias="buyerId"),
) -> Page[OrderResponse]:
    orders, total = current_domain.repository_for(Order).list_for_seller(
        user.user_id, page=page, limit=limit, status=status, buyer_id=buyer_id
    )
    return Page[OrderResponse].of(
        [OrderResponse.from_order(o, seller_id=user.user_id) for o in orders], page, limit, total
    )


@store_router.get("/orders/{order_id}", response_model=OrderResponse)
def get_store_order(order_id: str, user: ActingUser = Depends(require_seller)) -> OrderResponse:
    order = current_domain.repository_for(Order).get_for_seller(order_id, user.user_id)
    return OrderResponse.from_order(order, seller_id=user.user_id)


@store_router.patch("/orders/{order_id}/status", response_model=OrderResponse)
def update_store_order_status(
    order_id: str,
    body: SellerOrderStatusRequest,
    user: ActingUser = Depends(require_seller),
) -> OrderResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        seller_id=user.user_id,
        status=body.status,
        tracking_number=body.tracking_number,
        carrier=body.carrier,
        estimated_delivery_date=body.estimated_delivery_date,
        reason=body.reason,
        notes=body.notes,
    )
    result = process_exclusively(command, order_key(order_id))

    order = current_domain.repository_for(Order).get(order_id)
    if result["from_status"] != result["to_status"]:
        notices.order_status_changed(order, result["from_status"], actor="seller")
    for moved in result["items"]:
        notices.order_item_status_changed(order, order.get_item(moved["item_id"]), moved["from_status"])
    return OrderResponse.from_order(order, seller_id=user.user_id)


@store_router.patch("/orders/{order_id}/items/{item_id}/status", response_model=OrderResponse)
def update_store_order_item_status(
    order_id: str,
    item_id: str,
    body: ItemStatusRequest,
    user: ActingUser = Depends(require_seller),
) -> OrderResponse:
    command = UpdateOrderItemStatus(
        order_id=order_id,
        item_id=item_id,
        status=body.status,
        actor="seller",
        actor_id=user.user_id,
    )
    result = process_exclusively(command, order_key(order_id))

    order = current_domain.repository_for(Order).get(order_id)
    notices.order_item_status_changed(order, order.get_item(item_id), result["from_status"])
    return OrderResponse.from_order(order, seller_id=user.user_id)


@store_router.get("/returns", response_model=Page[ReturnResponse])
def list_store_returns(
    user: ActingUser = Depends(require_seller),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str = "all",
    order_id: str | None = Query(None, alias="orderId"),
    buyer_id: str | None = Query(None, alias="buyerId"),
) -> Page[ReturnResponse]:
    returns, total = current_domain.repository_for(ReturnRequest).list_for_seller(
        user.user_id, page=page, limit=limit, status=status, order_id=order_id, buyer_id=buyer_id
    )
    return Page[ReturnResponse].of([ReturnResponse.from_return(r) for r in returns], page, limit, total)


@store_router.patch("/returns/{return_id}/status", response_model=ReturnResponse)
def update_store_return_status(
    return_id: str,
    body: ReturnStatusRequest,
    user: ActingUser = Depends(require_seller),
) -> ReturnResponse:
    command = UpdateReturnStatus(
        return_id=return_id,
        status=body.status,
        actor="seller",
        actor_id=user.user_id,
        rejection_reason=body.reason,
        notes=body.notes,
        refund_amount=body.refund_amount,
    )
    result = process_exclusively(command, return_key(return_id))

    return_request = current_domain.repository_for(ReturnRequest).get(return_id)
    notices.return_status_changed(return_request, result["from_status"])
    return ReturnResponse.from_return(return_request)
