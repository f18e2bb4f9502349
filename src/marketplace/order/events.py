"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A checkout produced an order, whatever the payment outcome."""

    __version__ = 1

    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    status = String(required=True)
    payment_status = String(required=True)
    seller_ids = Text(required=True)  # JSON list
    item_count = Integer(required=True)
    grand_total = Float(required=True)
    currency = String(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    actor = String(required=True)
    actor_id = Identifier()
    tracking_number = String()
    carrier = String()
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderItemStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderRefunded:
    """An admin refunded money against the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(required=True)
    refunded_at = DateTime(required=True)
