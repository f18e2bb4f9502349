"""Seller fulfilment: order-level and item-level status commands."""

from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.order.state_machine import Actor
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@marketplace.command(part_of="Order")
class UpdateOrderStatus:
    """Advance an order on behalf of a seller who owns some of its items."""

    order_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    estimated_delivery_date = DateTime()
    reason = String(max_length=500)
    notes = Text()


@marketplace.command(part_of="Order")
class UpdateOrderItemStatus:
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    actor = String(required=True, max_length=20)
    actor_id = Identifier()


@marketplace.command_handler(part_of=Order)
class FulfillmentHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_for_seller(command.order_id, command.seller_id)

        previous, moved_items = order.seller_transition(
            seller_id=command.seller_id,
            target=command.status,
            tracking_number=command.tracking_number,
            carrier=command.carrier,
            estimated_delivery_date=command.estimated_delivery_date,
            reason=command.reason,
            notes=command.notes,
        )
        repo.add(order)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            from_status=previous,
            to_status=order.status,
            actor="seller",
            seller_id=str(command.seller_id),
            items_moved=len(moved_items),
        )
        return {
            "order_id": str(order.id),
            "from_status": previous,
            "to_status": order.status,
            "items": moved_items,
        }

    @handle(UpdateOrderItemStatus)
    def update_order_item_status(self, command):
        actor = Actor(command.actor)
        repo = current_domain.repository_for(Order)
        if actor == Actor.SELLER:
            order = repo.get_for_seller(command.order_id, command.actor_id)
        else:
            order = repo.get(command.order_id)

        previous = order.transition_item(command.item_id, command.status, actor, seller_id=command.actor_id)
        repo.add(order)

        item = order.get_item(command.item_id)
        logger.info(
            "Order item status changed",
            order_id=str(order.id),
            item_id=str(item.id),
            from_status=previous,
            to_status=item.item_status,
            actor=actor.value,
        )
        return {
            "order_id": str(order.id),
            "item_id": str(item.id),
            "from_status": previous,
            "to_status": item.item_status,
        }
