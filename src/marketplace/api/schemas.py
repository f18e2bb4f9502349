"""Pydantic request/response schemas for the marketplace API.

These are external contracts (anti-corruption layer), separate from the
internal protean commands. Fields are camelCase on the wire and snake_case in
Python; requests accept either spelling.
"""

import math
from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from marketplace.utils.money import as_float


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------
T = TypeVar("T")


class Page(CamelModel, Generic[T]):
    results: list[T]
    page: int
    limit: int
    total_pages: int
    total_results: int

    @classmethod
    def of(cls, results, page, limit, total):
        return cls(
            results=results,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
            total_results=total,
        )


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class CartItemRequest(CamelModel):
    product_id: str
    variant_id: str
    quantity: int = Field(ge=1, default=1)


class UpdateCartItemRequest(CamelModel):
    quantity: int = Field(ge=1)


class MergeCartRequest(CamelModel):
    anonymous_cart_id: str


class CartItemResponse(CamelModel):
    id: str
    product_id: str
    variant_id: str
    product_name: str | None = None
    quantity: int
    price_at_addition: float | None = None
    currency_at_addition: str | None = None
    added_at: datetime | None = None


class CartResponse(CamelModel):
    id: str | None
    user_id: str | None = None
    items: list[CartItemResponse]
    total_items: int
    total_quantity: int
    subtotal: float
    currency: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_cart(cls, cart):
        items = [
            CartItemResponse(
                id=str(item.id),
                product_id=str(item.product_id),
                variant_id=str(item.variant_id),
                product_name=item.product_name,
                quantity=item.quantity,
                price_at_addition=item.unit_price,
                currency_at_addition=item.currency,
                added_at=item.added_at,
            )
            for item in cart.items
        ]
        return cls(
            id=str(cart.id),
            user_id=str(cart.buyer_id) if cart.buyer_id else None,
            items=items,
            total_items=len(items),
            total_quantity=cart.total_quantity,
            subtotal=cart.subtotal,
            currency=items[0].currency_at_addition if items else "USD",
            status=cart.status,
            created_at=cart.created_at,
            updated_at=cart.updated_at,
        )

    @classmethod
    def empty(cls, buyer_id):
        """A buyer who has never added anything sees an empty, unsaved cart."""
        return cls(
            id=None,
            user_id=str(buyer_id),
            items=[],
            total_items=0,
            total_quantity=0,
            subtotal=0.0,
            currency="USD",
            status="active",
        )


class MergeCartResponse(CamelModel):
    cart: CartResponse
    merged: bool


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(CamelModel):
    cart_id: str | None = None
    shipping_address_id: str
    billing_address_id: str | None = None
    payment_method_id: str
    shipping_method: str = Field(default="standard", min_length=1)
    notes_by_buyer: str | None = None
    discount_code: str | None = None


class CancelOrderRequest(CamelModel):
    reason: str | None = None


class RequestReturnRequest(CamelModel):
    order_item_id: str
    reason: str = Field(min_length=1)
    quantity: int = Field(ge=1)


class SellerOrderStatusRequest(CamelModel):
    status: str
    tracking_number: str | None = None
    carrier: str | None = None
    estimated_delivery_date: datetime | None = None
    reason: str | None = None
    notes: str | None = None


class ItemStatusRequest(CamelModel):
    status: str


class AdminOrderStatusRequest(CamelModel):
    status: str
    notes: str | None = None


class RefundRequest(CamelModel):
    amount: float = Field(gt=0)
    reason: str = Field(min_length=1)


class ReturnStatusRequest(CamelModel):
    status: str
    reason: str | None = None
    notes: str | None = None
    refund_amount: float | None = None


class AddressSnapshotSchema(CamelModel):
    address_id: str | None = None
    address_type: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    address_line1: str
    address_line2: str | None = None
    city: str
    state_province_region: str | None = None
    postal_code: str
    country: str

    @classmethod
    def from_vo(cls, snapshot):
        if snapshot is None:
            return None
        return cls(
            address_id=snapshot.address_id,
            address_type=snapshot.address_type,
            contact_name=snapshot.contact_name,
            contact_phone=snapshot.contact_phone,
            address_line1=snapshot.address_line1,
            address_line2=snapshot.address_line2,
            city=snapshot.city,
            state_province_region=snapshot.state_province_region,
            postal_code=snapshot.postal_code,
            country=snapshot.country,
        )


class PaymentMethodSnapshotSchema(CamelModel):
    payment_method_id: str
    gateway: str | None = None
    type: str | None = None
    card_brand: str | None = None
    last_four_digits: str | None = None


class OrderItemResponse(CamelModel):
    id: str
    product_id: str
    variant_id: str
    seller_id: str
    product_name_snapshot: str | None = None
    variant_attributes_snapshot: dict
    quantity: int
    unit_price: float
    total_price: float
    item_status: str


class OrderResponse(CamelModel):
    id: str
    buyer_id: str
    status: str
    payment_status: str
    order_date: datetime | None = None
    items: list[OrderItemResponse]
    shipping_address_snapshot: AddressSnapshotSchema | None = None
    billing_address_snapshot: AddressSnapshotSchema | None = None
    payment_method_snapshot: PaymentMethodSnapshotSchema | None = None
    subtotal_amount: float
    discount_amount: float
    shipping_cost: float
    tax_amount: float
    total_amount: float
    currency: str
    shipping_method: str | None = None
    discount_code: str | None = None
    payment_gateway_transaction_id: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    estimated_delivery_date: datetime | None = None
    notes_by_buyer: str | None = None
    internal_notes: str | None = None
    cancellation_reason: str | None = None
    refund_amount: float | None = None
    refund_reason: str | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order, seller_id=None, include_internal=False):
        """Build the response; a seller only sees their own items."""
        items = order.items_for_seller(seller_id) if seller_id else list(order.items)
        payment = order.payment_method
        pricing = order.pricing
        return cls(
            id=str(order.id),
            buyer_id=str(order.buyer_id),
            status=order.status,
            payment_status=order.payment_status,
            order_date=order.ordered_at,
            items=[
                OrderItemResponse(
                    id=str(item.id),
                    product_id=str(item.product_id),
                    variant_id=str(item.variant_id),
                    seller_id=str(item.seller_id),
                    product_name_snapshot=item.product_name_snapshot,
                    variant_attributes_snapshot=item.variant_attributes,
                    quantity=item.quantity,
                    unit_price=as_float(item.unit_price),
                    total_price=as_float(item.total_price),
                    item_status=item.item_status,
                )
                for item in items
            ],
            shipping_address_snapshot=AddressSnapshotSchema.from_vo(order.shipping_address),
            billing_address_snapshot=AddressSnapshotSchema.from_vo(order.billing_address),
            payment_method_snapshot=(
                PaymentMethodSnapshotSchema(
                    payment_method_id=payment.payment_method_id,
                    gateway=payment.gateway,
                    type=payment.type,
                    card_brand=payment.card_brand,
                    last_four_digits=payment.last_four_digits,
                )
                if payment
                else None
            ),
            subtotal_amount=as_float(pricing.subtotal),
            discount_amount=as_float(pricing.discount_total),
            shipping_cost=as_float(pricing.shipping_cost),
            tax_amount=as_float(pricing.tax_total),
            total_amount=as_float(pricing.grand_total),
            currency=pricing.currency,
            shipping_method=order.shipping_method,
            discount_code=order.discount_code,
            payment_gateway_transaction_id=order.payment_transaction_id,
            tracking_number=order.tracking_number,
            carrier=order.carrier,
            estimated_delivery_date=order.estimated_delivery_date,
            notes_by_buyer=order.notes_by_buyer,
            internal_notes=order.internal_notes if include_internal else None,
            cancellation_reason=order.cancellation_reason,
            refund_amount=as_float(order.refund_amount),
            refund_reason=order.refund_reason,
            updated_at=order.updated_at,
        )


class ReturnResponse(CamelModel):
    id: str
    order_id: str
    order_item_id: str
    buyer_id: str
    seller_id: str
    quantity: int
    reason: str
    status: str
    rejection_reason: str | None = None
    seller_notes: str | None = None
    refund_amount: float | None = None
    refunded_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_return(cls, return_request):
        return cls(
            id=str(return_request.id),
            order_id=str(return_request.order_id),
            order_item_id=str(return_request.order_item_id),
            buyer_id=str(return_request.buyer_id),
            seller_id=str(return_request.seller_id),
            quantity=return_request.quantity,
            reason=return_request.reason,
            status=return_request.status,
            rejection_reason=return_request.rejection_reason,
            seller_notes=return_request.seller_notes,
            refund_amount=as_float(return_request.refund_amount),
            refunded_at=return_request.refunded_at,
            created_at=return_request.created_at,
            updated_at=return_request.updated_at,
        )
