"""Buyer cancellation: command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@marketplace.command(part_of="Order")
class CancelOrder:
    """Cancel an order on behalf of the buyer who placed it."""

    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    reason = String(max_length=500)


@marketplace.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_for_buyer(command.order_id, command.buyer_id)

        previous = order.cancel_by_buyer(reason=command.reason)
        repo.add(order)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            from_status=previous,
            to_status=order.status,
            actor="buyer",
        )
        return {"order_id": str(order.id), "from_status": previous, "to_status": order.status}
