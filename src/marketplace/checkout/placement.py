"""Checkout: turn a cart into an order.

``PlaceOrder`` runs the whole checkout inside one command handler, so the
order, its items and the cleared cart are committed together by the unit of
work, or not at all:

1. Resolve the source cart (an anonymous cart by token, or the buyer's own).
2. Re-resolve every line against the catalog; stale or unavailable variants
   abort the checkout.
3. Snapshot the shipping and billing addresses and the payment method.
4. Price the order.
5. Authorize payment. A decline still produces an order, in
   ``payment_failed``, so the buyer has a durable record.
6. Store the order and clear the cart (only when payment did not fail).

A client-supplied idempotency key makes the command safe to retry: the same
key with the same payload returns the order created the first time. An
attempt whose payment was declined does not hold the key, so the buyer can
fix the payment method and retry with it.
"""

import hashlib
import json
from decimal import Decimal
from uuid import uuid4

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.cart.repository import load_cart
from marketplace.checkout.pricing import PricedLine, calculate_totals, default_currency
from marketplace.checkout.snapshots import snapshot_address, snapshot_payment_method
from marketplace.collaborators.catalog import get_catalog
from marketplace.collaborators.payments import get_payments
from marketplace.collaborators.promotions import get_promotions
from marketplace.domain import marketplace
from marketplace.errors import ConflictError
from marketplace.order.order import Order, OrderPricing
from marketplace.order.state_machine import OrderStatus
from marketplace.utils.logging import get_logger
from marketplace.utils.resilience import call_collaborator

logger = get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    buyer_id = Identifier(required=True)
    cart_id = Identifier()  # Anonymous cart being checked out; the buyer's own cart otherwise
    shipping_address_id = Identifier(required=True)
    billing_address_id = Identifier()  # Defaults to the shipping address
    payment_method_id = Identifier(required=True)
    shipping_method = String(max_length=50, default="standard")
    notes_by_buyer = Text()
    discount_code = String(max_length=100)
    idempotency_key = String(max_length=255)


def request_fingerprint(command) -> str:
    """Hash of the payload a buyer submitted, used to detect reused idempotency keys."""
    payload = {
        "cart_id": command.cart_id,
        "shipping_address_id": command.shipping_address_id,
        "billing_address_id": command.billing_address_id or command.shipping_address_id,
        "payment_method_id": command.payment_method_id,
        "shipping_method": command.shipping_method,
        "notes_by_buyer": command.notes_by_buyer,
        "discount_code": command.discount_code,
    }
    encoded = json.dumps({k: str(v) if v is not None else None for k, v in payload.items()}, sort_keys=True)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _price_lines(cart) -> list[PricedLine]:
    catalog = get_catalog()
    lines = []
    for item in cart.items:
        variant = call_collaborator("catalog", catalog.resolve_variant, str(item.product_id), str(item.variant_id))
        if variant is None or not variant.is_active:
            raise ConflictError(
                {"items": [f"Product {item.product_id} variant {item.variant_id} is no longer available"]},
                variant_id=str(item.variant_id),
            )
        if variant.stock < item.quantity:
            raise ConflictError(
                {"items": [f"Insufficient stock for variant {item.variant_id}. Available: {variant.stock}"]},
                variant_id=str(item.variant_id),
            )

        lines.append(
            PricedLine(
                product_id=str(item.product_id),
                variant_id=str(item.variant_id),
                seller_id=variant.seller_id,
                quantity=item.quantity,
                unit_price=Decimal(str(variant.price)),
                product_name=variant.product_name,
                variant_attributes=dict(variant.attributes),
            )
        )
    return lines


def _payment_key(order_repo, command) -> str:
    """Gateway idempotency key for this attempt.

    A retry after a declined payment must reach the gateway again, so each
    declined attempt under the same client key moves the gateway key on.
    """
    if not command.idempotency_key:
        return f"{command.buyer_id}:checkout-{uuid4().hex}"
    key = f"{command.buyer_id}:{command.idempotency_key}"
    declined = order_repo.declined_attempts(command.buyer_id, command.idempotency_key)
    return f"{key}:retry-{declined}" if declined else key


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        order_repo = current_domain.repository_for(Order)
        fingerprint = request_fingerprint(command)

        if command.idempotency_key:
            existing = order_repo.find_by_idempotency_key(command.buyer_id, command.idempotency_key)
            if existing is not None:
                if existing.request_fingerprint != fingerprint:
                    raise ConflictError(
                        {"idempotency_key": ["Idempotency key was already used with a different request"]}
                    )
                logger.info("Checkout replayed", order_id=str(existing.id), buyer_id=str(command.buyer_id))
                return {"order_id": str(existing.id), "replayed": True}

        logger.info("Checkout started", buyer_id=str(command.buyer_id), cart_id=command.cart_id)

        cart = load_cart(cart_id=command.cart_id) if command.cart_id else load_cart(buyer_id=command.buyer_id)
        if cart is None or not cart.items:
            raise ValidationError({"cart": ["Cannot check out an empty cart"]})

        lines = _price_lines(cart)

        shipping_address = snapshot_address(command.buyer_id, command.shipping_address_id)
        billing_address = snapshot_address(
            command.buyer_id,
            command.billing_address_id or command.shipping_address_id,
            field="billing_address_id",
        )
        payment_method = snapshot_payment_method(command.buyer_id, command.payment_method_id)

        currency = default_currency()
        subtotal = sum((line.line_total for line in lines), Decimal("0"))
        discount = call_collaborator(
            "promotions",
            get_promotions().discount_for,
            str(command.buyer_id),
            command.discount_code,
            subtotal,
        )
        breakdown = calculate_totals(
            lines,
            shipping_method=command.shipping_method,
            shipping_address=shipping_address,
            discount=discount,
            currency=currency,
        )

        authorization = call_collaborator(
            "payments",
            get_payments().authorize,
            str(command.payment_method_id),
            float(breakdown.grand_total),
            breakdown.currency,
            _payment_key(order_repo, command),
        )
        logger.info(
            "Payment authorization completed",
            buyer_id=str(command.buyer_id),
            outcome=authorization.status,
            amount=float(breakdown.grand_total),
        )

        order = Order.place(
            buyer_id=command.buyer_id,
            lines=[
                {
                    "product_id": line.product_id,
                    "variant_id": line.variant_id,
                    "seller_id": line.seller_id,
                    "product_name": line.product_name,
                    "variant_attributes": line.variant_attributes,
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                    "total_price": line.line_total,
                }
                for line in lines
            ],
            shipping_address=shipping_address,
            billing_address=billing_address,
            payment_method=payment_method,
            pricing=OrderPricing.from_amounts(**breakdown.amounts()),
            payment_outcome=authorization.status,
            shipping_method=command.shipping_method,
            payment_transaction_id=authorization.transaction_id,
            payment_failure_reason=authorization.failure_reason,
            notes_by_buyer=command.notes_by_buyer,
            discount_code=command.discount_code,
            idempotency_key=command.idempotency_key,
            request_fingerprint=fingerprint,
            source_cart_id=str(cart.id),
        )
        order_repo.add(order)

        # A failed payment leaves the cart in place for a retry
        if order.status != OrderStatus.PAYMENT_FAILED.value:
            cart.clear()
            current_domain.repository_for(ShoppingCart).add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            buyer_id=str(command.buyer_id),
            status=order.status,
            grand_total=str(order.pricing.grand_total),
        )
        return {"order_id": str(order.id), "replayed": False}
