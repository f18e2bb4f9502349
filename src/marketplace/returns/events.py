"""Domain events for the ReturnRequest aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="ReturnRequest")
class ReturnRequested:
    __version__ = 1

    return_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_item_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    quantity = Integer(required=True)
    reason = String(required=True)
    requested_at = DateTime(required=True)


@marketplace.event(part_of="ReturnRequest")
class ReturnStatusChanged:
    """A seller or admin moved a return request to a new status."""

    __version__ = 1

    return_id = Identifier(required=True)
    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    actor = String(required=True)
    actor_id = Identifier()
    refund_amount = Float()
    changed_at = DateTime(required=True)
