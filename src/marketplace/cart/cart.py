"""Shopping Cart aggregate (CQRS).

A cart belongs either to an anonymous session, in which case its id is the
opaque token handed to the client, or to a buyer. It holds at most one line
per (product, variant) pair; adding a pair that is already present increases
that line's quantity. Unit prices captured on a line are for display only:
checkout re-resolves the live price from the catalog.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from marketplace.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartsMerged,
)
from marketplace.domain import marketplace


class CartStatus(Enum):
    ACTIVE = "active"
    MERGED = "merged"


@marketplace.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(min_value=0.0)
    currency = String(max_length=3, default="USD")
    product_name = String(max_length=255)
    added_at = DateTime()

    def matches(self, product_id, variant_id) -> bool:
        return str(self.product_id) == str(product_id) and str(self.variant_id) == str(variant_id)


@marketplace.aggregate
class ShoppingCart:
    buyer_id = Identifier()  # Empty for anonymous carts
    items = HasMany(CartItem)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    merged_into = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, buyer_id=None):
        now = datetime.now(UTC)
        return cls(
            buyer_id=buyer_id,
            status=CartStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_anonymous(self) -> bool:
        return not self.buyer_id

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> float:
        """Indicative subtotal from the prices captured when lines were added."""
        total = sum(
            (Decimal(str(item.unit_price or 0)) * item.quantity for item in self.items),
            Decimal("0"),
        )
        return float(total.quantize(Decimal("0.01")))

    def _assert_active(self):
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": ["Cart is no longer active"]})

    def _find_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ObjectNotFoundError({"item_id": [f"Item {item_id} not found in cart"]})
        return item

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, variant_id, quantity, unit_price=None, currency="USD", product_name=None):
        """Add a line, or increase the quantity of the line for the same variant."""
        self._assert_active()
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        existing = next((i for i in self.items if i.matches(product_id, variant_id)), None)
        if existing:
            existing.quantity += quantity
            item_id = str(existing.id)
        else:
            item = CartItem(
                product_id=product_id,
                variant_id=variant_id,
                quantity=quantity,
                unit_price=unit_price,
                currency=currency,
                product_name=product_name,
                added_at=now,
            )
            self.add_items(item)
            item_id = str(item.id)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                buyer_id=str(self.buyer_id) if self.buyer_id else None,
                item_id=item_id,
                product_id=str(product_id),
                variant_id=str(variant_id),
                quantity=quantity,
            )
        )
        return item_id

    def update_item_quantity(self, item_id, new_quantity):
        self._assert_active()
        if new_quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        item = self._find_item(item_id)
        previous_quantity = item.quantity
        item.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, item_id):
        self._assert_active()
        item = self._find_item(item_id)
        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id)))

    def clear(self):
        """Remove every line. Clearing an empty cart is a no-op."""
        removed = 0
        for item in list(self.items):
            self.remove_items(item)
            removed += 1

        if removed:
            self.updated_at = datetime.now(UTC)
            self.raise_(CartCleared(cart_id=str(self.id), items_removed=removed))
        return removed

    # -------------------------------------------------------------------
    # Merging (anonymous -> buyer)
    # -------------------------------------------------------------------
    def absorb(self, source):
        """Fold every line of ``source`` into this cart and retire ``source``.

        Lines use the same (product, variant) rule as ``add_item``. The source
        cart is emptied and marked merged so it can no longer be resolved.
        """
        self._assert_active()
        source._assert_active()

        now = datetime.now(UTC)
        merged = 0
        for line in list(source.items):
            existing = next((i for i in self.items if i.matches(line.product_id, line.variant_id)), None)
            if existing:
                existing.quantity += line.quantity
            else:
                self.add_items(
                    CartItem(
                        product_id=line.product_id,
                        variant_id=line.variant_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        currency=line.currency,
                        product_name=line.product_name,
                        added_at=line.added_at or now,
                    )
                )
            source.remove_items(line)
            merged += 1

        source.status = CartStatus.MERGED.value
        source.merged_into = str(self.id)
        source.updated_at = now
        self.updated_at = now

        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                buyer_id=str(self.buyer_id),
                source_cart_id=str(source.id),
                items_merged_count=merged,
            )
        )
        return merged
