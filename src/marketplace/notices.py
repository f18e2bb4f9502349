"""User-facing notifications sent after a state change has been stored.

Each function is called by the HTTP layer once the command that changed the
order or return has committed. Delivery is best effort: failures are logged
by ``notify`` and never reach the caller.
"""

from marketplace.collaborators.notifications import notify
from marketplace.utils.money import as_float


def order_placed(order) -> None:
    notify(
        order.buyer_id,
        "order_placed",
        order_id=str(order.id),
        status=order.status,
        grand_total=as_float(order.pricing.grand_total),
        currency=order.pricing.currency,
    )
    for seller_id in order.seller_id_list:
        notify(seller_id, "order_placed", order_id=str(order.id), items=len(order.items_for_seller(seller_id)))


def order_status_changed(order, from_status, actor) -> None:
    notify(
        order.buyer_id,
        "order_status_changed",
        order_id=str(order.id),
        from_status=from_status,
        to_status=order.status,
        actor=actor,
        tracking_number=order.tracking_number,
    )
    if actor != "seller":
        for seller_id in order.seller_id_list:
            notify(seller_id, "order_status_changed", order_id=str(order.id), to_status=order.status, actor=actor)


def order_item_status_changed(order, item, from_status) -> None:
    notify(
        order.buyer_id,
        "order_item_status_changed",
        order_id=str(order.id),
        item_id=str(item.id),
        from_status=from_status,
        to_status=item.item_status,
    )


def order_refunded(order) -> None:
    notify(
        order.buyer_id,
        "order_refunded",
        order_id=str(order.id),
        amount=as_float(order.refund_amount),
        reason=order.refund_reason,
    )


def return_requested(return_request) -> None:
    notify(
        return_request.seller_id,
        "return_requested",
        return_id=str(return_request.id),
        order_id=str(return_request.order_id),
        quantity=return_request.quantity,
    )


def return_status_changed(return_request, from_status) -> None:
    notify(
        return_request.buyer_id,
        "return_status_changed",
        return_id=str(return_request.id),
        from_status=from_status,
        to_status=return_request.status,
    )
