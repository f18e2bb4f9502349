"""Order aggregate (CQRS): the immutable purchase record produced by checkout.

An order is created once, together with all of its items, and afterwards
only its status, fulfilment fields, payment status and notes change. Address,
payment method and price data are snapshots taken at checkout and are never
refreshed from their live sources.

Order status and item status are separate state machines (see
``state_machine``). In a multi-seller order each seller drives the status of
their own items; order-level changes are mirrored onto items wherever the
item graph allows the move.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text, ValueObject

from marketplace.domain import marketplace
from marketplace.errors import ConflictError
from marketplace.order.events import OrderItemStatusChanged, OrderPlaced, OrderRefunded, OrderStatusChanged
from marketplace.order.state_machine import (
    ORDER_TO_ITEM_STATUS,
    SELLER_TARGETS,
    TERMINAL_ORDER_STATUSES,
    Actor,
    ItemStatus,
    OrderStatus,
    PaymentStatus,
    assert_item_transition,
    assert_order_transition,
    can_transition_item,
    parse_item_status,
    parse_order_status,
)
from marketplace.utils.money import as_float, from_cents, to_cents, to_money

# Initial order and payment status for each authorization outcome
_PAYMENT_OUTCOMES = {
    "authorized": (OrderStatus.PROCESSING, PaymentStatus.PAID),
    "pending": (OrderStatus.PENDING_PAYMENT, PaymentStatus.PENDING),
    "declined": (OrderStatus.PAYMENT_FAILED, PaymentStatus.FAILED),
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class AddressSnapshot:
    """A buyer address copied at checkout time.

    Later edits to the buyer's address book never reach an order that has
    already been placed.
    """

    address_id = String(max_length=255)
    address_type = String(max_length=20)
    contact_name = String(max_length=255)
    contact_phone = String(max_length=50)
    address_line1 = String(required=True, max_length=255)
    address_line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state_province_region = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@marketplace.value_object(part_of="Order")
class PaymentMethodSnapshot:
    payment_method_id = String(required=True, max_length=255)
    gateway = String(max_length=50)
    type = String(max_length=50)
    card_brand = String(max_length=50)
    last_four_digits = String(max_length=4)


@marketplace.value_object(part_of="Order")
class OrderPricing:
    """Financial summary locked at checkout, stored in integer cents.

    ``grand_total`` is always ``subtotal - discount_total + shipping_cost + tax_total``.
    Build it with ``from_amounts`` so the total is derived, never supplied.
    """

    subtotal_cents = Integer(default=0, min_value=0)
    discount_total_cents = Integer(default=0, min_value=0)
    shipping_cost_cents = Integer(default=0, min_value=0)
    tax_total_cents = Integer(default=0, min_value=0)
    grand_total_cents = Integer(default=0, min_value=0)
    currency = String(max_length=3, default="USD")

    @classmethod
    def from_amounts(cls, subtotal, discount_total=0, shipping_cost=0, tax_total=0, currency="USD"):
        subtotal_cents = to_cents(subtotal)
        discount_cents = to_cents(discount_total)
        shipping_cents = to_cents(shipping_cost)
        tax_cents = to_cents(tax_total)
        return cls(
            subtotal_cents=subtotal_cents,
            discount_total_cents=discount_cents,
            shipping_cost_cents=shipping_cents,
            tax_total_cents=tax_cents,
            grand_total_cents=subtotal_cents - discount_cents + shipping_cents + tax_cents,
            currency=currency,
        )

    @property
    def subtotal(self):
        return from_cents(self.subtotal_cents)

    @property
    def discount_total(self):
        return from_cents(self.discount_total_cents)

    @property
    def shipping_cost(self):
        return from_cents(self.shipping_cost_cents)

    @property
    def tax_total(self):
        return from_cents(self.tax_total_cents)

    @property
    def grand_total(self):
        return from_cents(self.grand_total_cents)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """One order line, owned by the seller of its variant."""

    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    product_name_snapshot = String(max_length=255)
    variant_attributes_snapshot = Text()  # JSON object
    quantity = Integer(required=True, min_value=1)
    unit_price_cents = Integer(required=True, min_value=0)
    total_price_cents = Integer(required=True, min_value=0)
    item_status = String(choices=ItemStatus, default=ItemStatus.PENDING.value)

    @property
    def unit_price(self):
        return from_cents(self.unit_price_cents)

    @property
    def total_price(self):
        return from_cents(self.total_price_cents)

    @property
    def variant_attributes(self) -> dict:
        return json.loads(self.variant_attributes_snapshot) if self.variant_attributes_snapshot else {}


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    buyer_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING_PAYMENT.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(AddressSnapshot)
    billing_address = ValueObject(AddressSnapshot)
    payment_method = ValueObject(PaymentMethodSnapshot)
    pricing = ValueObject(OrderPricing)
    shipping_method = String(max_length=50)
    discount_code = String(max_length=100)
    payment_transaction_id = String(max_length=255)
    payment_failure_reason = String(max_length=500)
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    estimated_delivery_date = DateTime()
    notes_by_buyer = Text()
    internal_notes = Text()
    cancellation_reason = String(max_length=500)
    refund_amount_cents = Integer()
    refund_reason = String(max_length=500)
    seller_ids = Text()  # JSON list, denormalized for seller-scoped queries
    idempotency_key = String(max_length=255)
    request_fingerprint = String(max_length=64)
    source_cart_id = Identifier()
    ordered_at = DateTime()
    updated_at = DateTime()

    @property
    def refund_amount(self):
        return from_cents(self.refund_amount_cents)

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        buyer_id,
        lines,
        shipping_address,
        billing_address,
        payment_method,
        pricing,
        payment_outcome,
        shipping_method=None,
        payment_transaction_id=None,
        payment_failure_reason=None,
        notes_by_buyer=None,
        discount_code=None,
        idempotency_key=None,
        request_fingerprint=None,
        source_cart_id=None,
    ):
        """Create an order and all of its items from checkout data.

        Args:
            lines: List of dicts with product_id, variant_id, seller_id,
                   product_name, variant_attributes, quantity, unit_price,
                   total_price.
            payment_outcome: ``authorized``, ``pending`` or ``declined``.
        """
        if not lines:
            raise ValidationError({"items": ["An order needs at least one item"]})

        status, payment_status = _PAYMENT_OUTCOMES[payment_outcome]
        item_status = ItemStatus.PROCESSING if status == OrderStatus.PROCESSING else ItemStatus.PENDING

        seller_ids = sorted({str(line["seller_id"]) for line in lines})
        now = datetime.now(UTC)

        order = cls(
            buyer_id=str(buyer_id),
            status=status.value,
            payment_status=payment_status.value,
            shipping_address=shipping_address,
            billing_address=billing_address,
            payment_method=payment_method,
            pricing=pricing,
            shipping_method=shipping_method,
            discount_code=discount_code,
            payment_transaction_id=payment_transaction_id,
            payment_failure_reason=payment_failure_reason,
            notes_by_buyer=notes_by_buyer,
            seller_ids=json.dumps(seller_ids),
            idempotency_key=idempotency_key,
            request_fingerprint=request_fingerprint,
            source_cart_id=source_cart_id,
            ordered_at=now,
            updated_at=now,
        )

        for line in lines:
            order.add_items(
                OrderItem(
                    product_id=line["product_id"],
                    variant_id=line["variant_id"],
                    seller_id=str(line["seller_id"]),
                    product_name_snapshot=line.get("product_name"),
                    variant_attributes_snapshot=json.dumps(line.get("variant_attributes") or {}),
                    quantity=line["quantity"],
                    unit_price_cents=to_cents(line["unit_price"]),
                    total_price_cents=to_cents(line["total_price"]),
                    item_status=item_status.value,
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                buyer_id=str(buyer_id),
                status=status.value,
                payment_status=payment_status.value,
                seller_ids=json.dumps(seller_ids),
                item_count=len(lines),
                grand_total=as_float(pricing.grand_total),
                currency=pricing.currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def seller_id_list(self) -> list[str]:
        return json.loads(self.seller_ids) if self.seller_ids else []

    def items_for_seller(self, seller_id) -> list:
        return [item for item in self.items if str(item.seller_id) == str(seller_id)]

    def get_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ObjectNotFoundError({"item_id": [f"Item {item_id} not found in order {self.id}"]})
        return item

    # -------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------
    def _set_status(self, target, actor, actor_id=None):
        previous = self.status
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                buyer_id=str(self.buyer_id),
                from_status=previous,
                to_status=target.value,
                actor=actor.value,
                actor_id=str(actor_id) if actor_id else None,
                tracking_number=self.tracking_number,
                carrier=self.carrier,
                changed_at=now,
            )
        )
        return previous

    def _set_item_status(self, item, target):
        previous = item.item_status
        now = datetime.now(UTC)
        item.item_status = target.value
        self.updated_at = now

        self.raise_(
            OrderItemStatusChanged(
                order_id=str(self.id),
                item_id=str(item.id),
                seller_id=str(item.seller_id),
                from_status=previous,
                to_status=target.value,
                changed_at=now,
            )
        )

    def _mirror_to_items(self, order_status, items, force=False):
        """Carry an order-level status over to ``items``.

        Only moves the item graph allows are made, unless ``force`` is set for
        an admin override; refunded items never move again.
        """
        item_target = ORDER_TO_ITEM_STATUS.get(order_status)
        if item_target is None:
            return []

        moved = []
        for item in items:
            current = ItemStatus(item.item_status)
            if force:
                allowed = current not in (item_target, ItemStatus.REFUNDED)
            else:
                allowed = can_transition_item(current, item_target)
            if allowed:
                moved.append({"item_id": str(item.id), "from_status": item.item_status})
                self._set_item_status(item, item_target)
        return moved

    def _append_internal_note(self, note, author):
        if not note:
            return
        stamp = datetime.now(UTC).isoformat(timespec="seconds")
        line = f"[{stamp}] {author}: {note.strip()}"
        self.internal_notes = f"{self.internal_notes}\n{line}" if self.internal_notes else line

    # -------------------------------------------------------------------
    # Buyer actions
    # -------------------------------------------------------------------
    def cancel_by_buyer(self, reason=None):
        assert_order_transition(self.status, OrderStatus.CANCELLED_BY_USER, Actor.BUYER)

        self.cancellation_reason = reason
        previous = self._set_status(OrderStatus.CANCELLED_BY_USER, Actor.BUYER, self.buyer_id)
        self._mirror_to_items(OrderStatus.CANCELLED_BY_USER, self.items)
        return previous

    # -------------------------------------------------------------------
    # Seller actions
    # -------------------------------------------------------------------
    def seller_transition(
        self,
        seller_id,
        target,
        tracking_number=None,
        carrier=None,
        estimated_delivery_date=None,
        reason=None,
        notes=None,
    ):
        """Move the order on behalf of a seller who owns at least one of its items.

        When another seller already moved the order to ``target``, only this
        seller's items follow.
        """
        seller_items = self.items_for_seller(seller_id)
        if not seller_items:
            raise ObjectNotFoundError({"order_id": [f"Order {self.id} not found"]})

        target = parse_order_status(target)
        current = OrderStatus(self.status)

        catching_up = current == target and target in SELLER_TARGETS and any(
            can_transition_item(ItemStatus(item.item_status), ORDER_TO_ITEM_STATUS[target])
            for item in seller_items
        )
        if not catching_up:
            assert_order_transition(current, target, Actor.SELLER)

        if target == OrderStatus.SHIPPED:
            if not tracking_number or not str(tracking_number).strip():
                raise ValidationError({"tracking_number": ["A tracking number is required to ship an order"]})
            self.tracking_number = str(tracking_number).strip()
            if carrier:
                self.carrier = carrier
            if estimated_delivery_date:
                self.estimated_delivery_date = estimated_delivery_date

        if target == OrderStatus.CANCELLED_BY_SELLER:
            self.cancellation_reason = reason

        self._append_internal_note(notes, f"seller {seller_id}")

        previous = self.status
        if not catching_up:
            self._set_status(target, Actor.SELLER, seller_id)
        moved = self._mirror_to_items(target, seller_items)
        return previous, moved

    # -------------------------------------------------------------------
    # Item-level fulfilment
    # -------------------------------------------------------------------
    def transition_item(self, item_id, target, actor, seller_id=None):
        item = self.get_item(item_id)
        if actor == Actor.SELLER and str(item.seller_id) != str(seller_id):
            raise ObjectNotFoundError({"item_id": [f"Item {item_id} not found in order {self.id}"]})
        if OrderStatus(self.status) in TERMINAL_ORDER_STATUSES and actor != Actor.ADMIN:
            raise ConflictError(
                {
                    "status": [f"Order {self.id} is {self.status}; its items can no longer change"],
                    "current_status": [self.status],
                }
            )

        target = parse_item_status(target)
        assert_item_transition(item.item_status, target, actor)

        previous = item.item_status
        self._set_item_status(item, target)
        return previous

    # -------------------------------------------------------------------
    # Admin actions
    # -------------------------------------------------------------------
    def admin_transition(self, target, notes=None, admin_id=None):
        target = parse_order_status(target)
        assert_order_transition(self.status, target, Actor.ADMIN)

        # Payment status follows the payment-related targets, never undoing a refund
        if self.payment_status != PaymentStatus.REFUNDED.value:
            if target == OrderStatus.PROCESSING:
                self.payment_status = PaymentStatus.PAID.value
            elif target == OrderStatus.PENDING_PAYMENT:
                self.payment_status = PaymentStatus.PENDING.value
            elif target == OrderStatus.PAYMENT_FAILED:
                self.payment_status = PaymentStatus.FAILED.value

        self._append_internal_note(notes, "admin")
        previous = self._set_status(target, Actor.ADMIN, admin_id)
        self._mirror_to_items(target, self.items, force=True)
        return previous

    def can_refund(self) -> bool:
        """Only captured payments can be refunded, and only once."""
        if self.payment_status != PaymentStatus.PAID.value or not self.payment_transaction_id:
            return False
        current = OrderStatus(self.status)
        if current not in TERMINAL_ORDER_STATUSES:
            return True
        # Orders cancelled after payment still owe the buyer money
        return current in {
            OrderStatus.CANCELLED_BY_USER,
            OrderStatus.CANCELLED_BY_SELLER,
            OrderStatus.CANCELLED_BY_ADMIN,
        }

    def process_refund(self, amount, reason, admin_id=None):
        """Record a refund and move the order through ``refund_pending`` to ``refunded``."""
        errors = {}
        if amount is None or to_money(amount) <= 0:
            errors["amount"] = ["Refund amount must be positive"]
        elif to_money(amount) > self.pricing.grand_total:
            errors["amount"] = [f"Refund amount cannot exceed the order total of {self.pricing.grand_total}"]
        if not reason or not reason.strip():
            errors["reason"] = ["A reason is required for a refund"]
        if errors:
            raise ValidationError(errors)

        if not self.can_refund():
            raise ConflictError(
                {
                    "status": [
                        f"Order in status {self.status} with payment {self.payment_status} cannot be refunded"
                    ],
                    "current_status": [self.status],
                    "attempted_status": [OrderStatus.REFUNDED.value],
                }
            )

        amount = to_money(amount)
        previous = self.status
        current = OrderStatus(self.status)
        if current != OrderStatus.REFUND_PENDING and current not in TERMINAL_ORDER_STATUSES:
            self._set_status(OrderStatus.REFUND_PENDING, Actor.ADMIN, admin_id)

        self.refund_amount_cents = to_cents(amount)
        self.refund_reason = reason.strip()
        self.payment_status = PaymentStatus.REFUNDED.value
        self._append_internal_note(f"Refunded {amount}: {self.refund_reason}", "admin")
        self._set_status(OrderStatus.REFUNDED, Actor.ADMIN, admin_id)
        self._mirror_to_items(OrderStatus.REFUNDED, self.items)

        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                buyer_id=str(self.buyer_id),
                amount=as_float(amount),
                reason=self.refund_reason,
                refunded_at=datetime.now(UTC),
            )
        )
        return previous
