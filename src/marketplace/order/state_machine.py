"""Status enums and transition maps for orders and order items.

Each map lists, for a status, the statuses it may move to. Buyers and
sellers are held to the graph and to their own targets: buyers may only
cancel early and sellers only drive fulfilment. Admins may set any status
except ``refunded``, which only the refund operation reaches.
"""

from enum import Enum

from protean.exceptions import ValidationError

from marketplace.errors import ConflictError, ForbiddenError, transition_conflict


class OrderStatus(Enum):
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_FAILED = "payment_failed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED_BY_USER = "cancelled_by_user"
    CANCELLED_BY_SELLER = "cancelled_by_seller"
    CANCELLED_BY_ADMIN = "cancelled_by_admin"
    REFUND_PENDING = "refund_pending"
    REFUNDED = "refunded"
    COMPLETED = "completed"
    RESOLVED_DISPUTE = "resolved_dispute"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class ItemStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    REFUNDED = "refunded"


class Actor(Enum):
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


ORDER_TRANSITIONS = {
    OrderStatus.PENDING_PAYMENT: {
        OrderStatus.PROCESSING,
        OrderStatus.PAYMENT_FAILED,
        OrderStatus.CANCELLED_BY_USER,
        OrderStatus.CANCELLED_BY_ADMIN,
    },
    OrderStatus.PAYMENT_FAILED: {OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELLED_BY_ADMIN},
    OrderStatus.PROCESSING: {
        OrderStatus.SHIPPED,
        OrderStatus.CANCELLED_BY_USER,
        OrderStatus.CANCELLED_BY_SELLER,
        OrderStatus.CANCELLED_BY_ADMIN,
    },
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED, OrderStatus.REFUND_PENDING},
    OrderStatus.REFUND_PENDING: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED_BY_USER: set(),  # Terminal
    OrderStatus.CANCELLED_BY_SELLER: set(),  # Terminal
    OrderStatus.CANCELLED_BY_ADMIN: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
    OrderStatus.COMPLETED: set(),  # Terminal
    OrderStatus.RESOLVED_DISPUTE: set(),  # Terminal
}

TERMINAL_ORDER_STATUSES = {status for status, targets in ORDER_TRANSITIONS.items() if not targets}

BUYER_CANCELLABLE = {OrderStatus.PENDING_PAYMENT, OrderStatus.PROCESSING}

SELLER_TARGETS = {
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED_BY_SELLER,
}

ITEM_TRANSITIONS = {
    ItemStatus.PENDING: {ItemStatus.PROCESSING, ItemStatus.CANCELLED},
    ItemStatus.PROCESSING: {ItemStatus.SHIPPED, ItemStatus.CANCELLED},
    ItemStatus.SHIPPED: {ItemStatus.OUT_FOR_DELIVERY, ItemStatus.DELIVERED},
    ItemStatus.OUT_FOR_DELIVERY: {ItemStatus.DELIVERED},
    ItemStatus.DELIVERED: {ItemStatus.RETURNED, ItemStatus.REFUNDED},
    ItemStatus.RETURNED: {ItemStatus.REFUNDED},
    ItemStatus.CANCELLED: {ItemStatus.REFUNDED},
    ItemStatus.REFUNDED: set(),  # Terminal
}

SELLER_ITEM_TARGETS = {
    ItemStatus.PROCESSING,
    ItemStatus.SHIPPED,
    ItemStatus.OUT_FOR_DELIVERY,
    ItemStatus.DELIVERED,
    ItemStatus.CANCELLED,
}

# Item status an order-level change carries over to, where the item graph allows it
ORDER_TO_ITEM_STATUS = {
    OrderStatus.PROCESSING: ItemStatus.PROCESSING,
    OrderStatus.SHIPPED: ItemStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY: ItemStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED: ItemStatus.DELIVERED,
    OrderStatus.CANCELLED_BY_USER: ItemStatus.CANCELLED,
    OrderStatus.CANCELLED_BY_SELLER: ItemStatus.CANCELLED,
    OrderStatus.CANCELLED_BY_ADMIN: ItemStatus.CANCELLED,
    OrderStatus.REFUNDED: ItemStatus.REFUNDED,
}


def _parse(enum_cls, value, field="status"):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError({field: [f"Unknown status: {value}"]}) from None


def parse_order_status(value) -> OrderStatus:
    return _parse(OrderStatus, value)


def parse_item_status(value) -> ItemStatus:
    return _parse(ItemStatus, value)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS.get(current, set())


def can_transition_item(current: ItemStatus, target: ItemStatus) -> bool:
    return target in ITEM_TRANSITIONS.get(current, set())


def assert_order_transition(current, target, actor: Actor) -> None:
    """Check that ``actor`` may move an order from ``current`` to ``target``.

    Raises ForbiddenError when the actor may never reach ``target`` and
    ConflictError when the graph does not allow the move from ``current``.
    """
    current = parse_order_status(current)
    target = parse_order_status(target)

    if actor == Actor.BUYER:
        if target != OrderStatus.CANCELLED_BY_USER:
            raise ForbiddenError({"status": ["Buyers may only cancel an order"]})
        if current not in BUYER_CANCELLABLE:
            raise transition_conflict("order", current.value, target.value)
        return

    if actor == Actor.SELLER:
        if target not in SELLER_TARGETS:
            raise ForbiddenError({"status": [f"Sellers may not set an order to {target.value}"]})
        if not can_transition(current, target):
            raise transition_conflict("order", current.value, target.value)
        return

    # Admin
    if target == OrderStatus.REFUNDED:
        raise ConflictError(
            {
                "status": ["Refunds must be processed through the refund operation"],
                "current_status": [current.value],
                "attempted_status": [target.value],
            }
        )
    if target == current:
        raise transition_conflict("order", current.value, target.value)


def assert_item_transition(current, target, actor: Actor) -> None:
    current = parse_item_status(current)
    target = parse_item_status(target)

    if actor == Actor.BUYER:
        raise ForbiddenError({"item_status": ["Buyers may not change item status"]})
    if actor == Actor.SELLER and target not in SELLER_ITEM_TARGETS:
        raise ForbiddenError({"item_status": [f"Sellers may not set an item to {target.value}"]})
    if not can_transition_item(current, target):
        raise transition_conflict("order item", current.value, target.value)
