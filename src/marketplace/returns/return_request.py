"""ReturnRequest aggregate: a buyer's request to send back part of an order item.

Returns are never deleted; every decision stays on record. Moving a return
never changes the parent order's status: refunding the order is a separate
admin action.

State machine:
    PENDING_APPROVAL -> APPROVED | REJECTED | ITEM_RECEIVED
    APPROVED -> PROCESSING_REFUND | ITEM_RECEIVED
    ITEM_RECEIVED -> APPROVED | REJECTED | PROCESSING_REFUND
    PROCESSING_REFUND -> REFUNDED | ITEM_RECEIVED
    REFUNDED, REJECTED (terminal)
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.errors import ForbiddenError, transition_conflict
from marketplace.order.state_machine import Actor
from marketplace.returns.events import ReturnRequested, ReturnStatusChanged
from marketplace.utils.money import as_float, from_cents, to_cents, to_money


class ReturnStatus(Enum):
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    ITEM_RECEIVED = "item_received"
    PROCESSING_REFUND = "processing_refund"
    REFUNDED = "refunded"


_VALID_TRANSITIONS = {
    ReturnStatus.PENDING_APPROVAL: {ReturnStatus.APPROVED, ReturnStatus.REJECTED, ReturnStatus.ITEM_RECEIVED},
    ReturnStatus.APPROVED: {ReturnStatus.PROCESSING_REFUND, ReturnStatus.ITEM_RECEIVED},
    ReturnStatus.ITEM_RECEIVED: {ReturnStatus.APPROVED, ReturnStatus.REJECTED, ReturnStatus.PROCESSING_REFUND},
    ReturnStatus.PROCESSING_REFUND: {ReturnStatus.REFUNDED, ReturnStatus.ITEM_RECEIVED},
    ReturnStatus.REFUNDED: set(),  # Terminal
    ReturnStatus.REJECTED: set(),  # Terminal
}


@marketplace.aggregate
class ReturnRequest:
    order_id = Identifier(required=True)
    order_item_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price_cents = Integer(min_value=0)
    reason = Text(required=True)
    status = String(choices=ReturnStatus, default=ReturnStatus.PENDING_APPROVAL.value)
    rejection_reason = Text()
    seller_notes = Text()
    refund_amount_cents = Integer()
    refunded_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def request(cls, order_id, order_item_id, buyer_id, seller_id, quantity, reason, unit_price=None):
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A reason is required to request a return"]})

        now = datetime.now(UTC)
        return_request = cls(
            order_id=str(order_id),
            order_item_id=str(order_item_id),
            buyer_id=str(buyer_id),
            seller_id=str(seller_id),
            quantity=quantity,
            unit_price_cents=to_cents(unit_price),
            reason=reason.strip(),
            status=ReturnStatus.PENDING_APPROVAL.value,
            created_at=now,
            updated_at=now,
        )
        return_request.raise_(
            ReturnRequested(
                return_id=str(return_request.id),
                order_id=str(order_id),
                order_item_id=str(order_item_id),
                buyer_id=str(buyer_id),
                seller_id=str(seller_id),
                quantity=quantity,
                reason=reason.strip(),
                requested_at=now,
            )
        )
        return return_request

    @property
    def unit_price(self):
        return from_cents(self.unit_price_cents)

    @property
    def refund_amount(self):
        return from_cents(self.refund_amount_cents)

    @property
    def counts_against_item(self) -> bool:
        """Rejected returns free their quantity for another request."""
        return self.status != ReturnStatus.REJECTED.value

    def _assert_can_transition(self, target_status):
        current = ReturnStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise transition_conflict("return request", current.value, target_status.value)

    def _assert_actor(self, actor, actor_id):
        if actor == Actor.ADMIN:
            return
        if actor == Actor.SELLER and str(actor_id) == str(self.seller_id):
            return
        raise ForbiddenError({"return_id": ["Only the seller of the returned item or an admin may update this return"]})

    def _default_refund_amount(self):
        if self.unit_price_cents is None:
            return None
        return from_cents(self.unit_price_cents * self.quantity)

    def transition(self, target, actor, actor_id=None, rejection_reason=None, notes=None, refund_amount=None):
        """Move the return to ``target`` on behalf of ``actor``."""
        try:
            target = ReturnStatus(target)
        except ValueError:
            raise ValidationError({"status": [f"Unknown return status: {target}"]}) from None

        self._assert_actor(actor, actor_id)
        self._assert_can_transition(target)

        if target == ReturnStatus.REJECTED:
            if not rejection_reason or not rejection_reason.strip():
                raise ValidationError({"rejection_reason": ["A reason is required to reject a return"]})
            self.rejection_reason = rejection_reason.strip()

        if target == ReturnStatus.REFUNDED:
            amount = to_money(refund_amount) if refund_amount is not None else self._default_refund_amount()
            maximum = self._default_refund_amount()
            if amount is not None and (amount <= 0 or (maximum is not None and amount > maximum)):
                raise ValidationError({"refund_amount": [f"Refund amount must be positive and at most {maximum}"]})
            self.refund_amount_cents = to_cents(amount)
            self.refunded_at = datetime.now(UTC)

        if notes:
            self.seller_notes = notes.strip()

        previous = self.status
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            ReturnStatusChanged(
                return_id=str(self.id),
                order_id=str(self.order_id),
                buyer_id=str(self.buyer_id),
                from_status=previous,
                to_status=target.value,
                actor=actor.value,
                actor_id=str(actor_id) if actor_id else None,
                refund_amount=as_float(self.refund_amount),
                changed_at=now,
            )
        )
        return previous
