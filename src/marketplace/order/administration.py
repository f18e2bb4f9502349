"""Admin order operations: forced status changes and refunds."""

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.collaborators.payments import get_payments
from marketplace.domain import marketplace
from marketplace.errors import ConflictError
from marketplace.order.order import Order
from marketplace.utils.logging import get_logger
from marketplace.utils.resilience import call_collaborator

logger = get_logger(__name__)


@marketplace.command(part_of="Order")
class AdminUpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    notes = Text()
    admin_id = Identifier()


@marketplace.command(part_of="Order")
class ProcessRefund:
    """Refund money against an order. Only admins may do this."""

    order_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(required=True, max_length=500)
    admin_id = Identifier()


@marketplace.command_handler(part_of=Order)
class AdministrationHandler:
    @handle(AdminUpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        previous = order.admin_transition(command.status, notes=command.notes, admin_id=command.admin_id)
        repo.add(order)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            from_status=previous,
            to_status=order.status,
            actor="admin",
        )
        return {"order_id": str(order.id), "from_status": previous, "to_status": order.status}

    @handle(ProcessRefund)
    def process_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        previous = order.process_refund(command.amount, command.reason, admin_id=command.admin_id)

        # The order is only stored once the gateway has accepted the refund
        result = call_collaborator(
            "payments",
            get_payments().refund,
            order.payment_transaction_id,
            command.amount,
            command.reason,
        )
        if not result.success:
            raise ConflictError({"refund": [result.failure_reason or "Refund was declined by the payment gateway"]})

        repo.add(order)

        logger.info(
            "Order refunded",
            order_id=str(order.id),
            from_status=previous,
            amount=command.amount,
            refund_id=result.refund_id,
        )
        return {"order_id": str(order.id), "from_status": previous, "to_status": order.status}
