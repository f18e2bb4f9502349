"""Return workflow: buyer requests and seller/admin decisions."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.order.state_machine import Actor, OrderStatus
from marketplace.returns.return_request import ReturnRequest
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

RETURNABLE_ORDER_STATUSES = {OrderStatus.DELIVERED.value, OrderStatus.COMPLETED.value}


@marketplace.command(part_of="ReturnRequest")
class RequestReturn:
    buyer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    reason = Text(required=True)


@marketplace.command(part_of="ReturnRequest")
class UpdateReturnStatus:
    return_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    actor = String(required=True, max_length=20)
    actor_id = Identifier()
    rejection_reason = Text()
    notes = Text()
    refund_amount = Float()


@marketplace.command_handler(part_of=ReturnRequest)
class ReturnWorkflowHandler:
    @handle(RequestReturn)
    def request_return(self, command):
        order = current_domain.repository_for(Order).get_for_buyer(command.order_id, command.buyer_id)
        if order.status not in RETURNABLE_ORDER_STATUSES:
            raise ValidationError(
                {"order_id": [f"Returns can only be requested for delivered or completed orders, not {order.status}"]}
            )

        item = order.get_item(command.order_item_id)

        repo = current_domain.repository_for(ReturnRequest)
        already_requested = repo.quantity_already_requested(item.id)
        returnable = item.quantity - already_requested
        if command.quantity > returnable:
            raise ValidationError(
                {
                    "quantity": [
                        f"Cannot return {command.quantity} of this item; "
                        f"ordered {item.quantity}, already requested {already_requested}"
                    ]
                }
            )

        return_request = ReturnRequest.request(
            order_id=order.id,
            order_item_id=item.id,
            buyer_id=command.buyer_id,
            seller_id=item.seller_id,
            quantity=command.quantity,
            reason=command.reason,
            unit_price=item.unit_price,
        )
        repo.add(return_request)

        logger.info(
            "Return requested",
            return_id=str(return_request.id),
            order_id=str(order.id),
            order_item_id=str(item.id),
            quantity=command.quantity,
        )
        return str(return_request.id)

    @handle(UpdateReturnStatus)
    def update_return_status(self, command):
        repo = current_domain.repository_for(ReturnRequest)
        return_request = repo.get(command.return_id)

        actor = Actor(command.actor)
        previous = return_request.transition(
            command.status,
            actor,
            actor_id=command.actor_id,
            rejection_reason=command.rejection_reason,
            notes=command.notes,
            refund_amount=command.refund_amount,
        )
        repo.add(return_request)

        logger.info(
            "Return status changed",
            return_id=str(return_request.id),
            from_status=previous,
            to_status=return_request.status,
            actor=actor.value,
        )
        return {"return_id": str(return_request.id), "from_status": previous, "to_status": return_request.status}
