"""FastAPI routes for admins: any order, forced status changes, refunds and returns."""

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from marketplace import notices
from marketplace.api.actors import ActingUser, require_admin
from marketplace.api.schemas import (
    AdminOrderStatusRequest,
    ItemStatusRequest,
    OrderResponse,
    Page,
    RefundRequest,
    ReturnResponse,
    ReturnStatusRequest,
)
from marketplace.order.administration import AdminUpdateOrderStatus, ProcessRefund
from marketplace.order.fulfillment import UpdateOrderItemStatus
from marketplace.order.order import Order
from marketplace.returns.return_request import ReturnRequest
from marketplace.returns.workflow import UpdateReturnStatus
from marketplace.utils.locking import order_key, process_exclusively, return_key

admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.get("/orders", response_model=Page[OrderResponse])
def list_orders(
    user: ActingUser = Depends(require_admin),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str | None = None,
    buyer_id: str | None = Query(None, alias="userId"),
    seller_id: str | None = Query(None, alias="sellerId"),
    order_id: str | None = Query(None, alias="orderId"),
) -> Page[OrderResponse]:
    orders, total = current_domain.repository_for(Order).list_all(
        page=page, limit=limit, status=status, buyer_id=buyer_id, seller_id=seller_id, order_id=order_id
    )
    return Page[OrderResponse].of(
        [OrderResponse.from_order(o, include_internal=True) for o in orders], page, limit, total
    )


@admin_router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, user: ActingUser = Depends(require_admin)) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return OrderResponse.from_order(order, include_internal=True)


@admin_router.patch("/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: str,
    body: AdminOrderStatusRequest,
    user: ActingUser = Depends(require_admin),
) -> OrderResponse:
    command = AdminUpdateOrderStatus(order_id=order_id, status=body.status, notes=body.notes, admin_id=user.user_id)
    result = process_exclusively(command, order_key(order_id))

    order = current_domain.repository_for(Order).get(order_id)
    notices.order_status_changed(order, result["from_status"], actor="admin")
    return OrderResponse.from_order(order, include_internal=True)


@admin_router.patch("/orders/{order_id}/items/{item_id}/status", response_model=OrderResponse)
def update_order_item_status(
    order_id: str,
    item_id: str,
    body: ItemStatusRequest,
    user: ActingUser = Depends(require_admin),
) -> OrderResponse:
    command = UpdateOrderItemStatus(
        order_id=order_id,
        item_id=item_id,
        status=body.status,
        actor="admin",
        actor_id=user.user_id,
    )
    result = process_exclusively(command, order_key(order_id))

    order = current_domain.repository_for(Order).get(order_id)
    notices.order_item_status_changed(order, order.get_item(item_id), result["from_status"])
    return OrderResponse.from_order(order, include_internal=True)


@admin_router.post("/orders/{order_id}/refund", response_model=OrderResponse)
def refund_order(
    order_id: str,
    body: RefundRequest,
    user: ActingUser = Depends(require_admin),
) -> OrderResponse:
    command = ProcessRefund(order_id=order_id, amount=body.amount, reason=body.reason, admin_id=user.user_id)
    process_exclusively(command, order_key(order_id))

    order = current_domain.repository_for(Order).get(order_id)
    notices.order_refunded(order)
    return OrderResponse.from_order(order, include_internal=True)


@admin_router.get("/returns", response_model=Page[ReturnResponse])
def list_returns(
    user: ActingUser = Depends(require_admin),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str = "all",
    order_id: str | None = Query(None, alias="orderId"),
    buyer_id: str | None = Query(None, alias="buyerId"),
) -> Page[ReturnResponse]:
    returns, total = current_domain.repository_for(ReturnRequest).list_all(
        page=page, limit=limit, status=status, order_id=order_id, buyer_id=buyer_id
    )
    return Page[ReturnResponse].of([ReturnResponse.from_return(r) for r in returns], page, limit, total)


@admin_router.patch("/returns/{return_id}/status", response_model=ReturnResponse)
def update_return_status(
    return_id: str,
    body: ReturnStatusRequest,
    user: ActingUser = Depends(require_admin),
) -> ReturnResponse:
    command = UpdateReturnStatus(
        return_id=return_id,
        status=body.status,
        actor="admin",
        actor_id=user.user_id,
        rejection_reason=body.reason,
        notes=body.notes,
        refund_amount=body.refund_amount,
    )
    result = process_exclusively(command, return_key(return_id))

    return_request = current_domain.repository_for(ReturnRequest).get(return_id)
    notices.return_status_changed(return_request, result["from_status"])
    return ReturnResponse.from_return(return_request)
