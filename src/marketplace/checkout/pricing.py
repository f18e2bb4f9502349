"""Checkout pricing.

``calculate_totals`` is a pure function of the priced lines, the shipping
method and the injected calculators. Money is handled as ``Decimal`` and
every component is rounded to cents before the grand total is summed, so
``grand_total == subtotal - discount + shipping + tax`` holds exactly.

Shipping and tax calculators are plain callables that can be swapped with
``set_shipping_calculator`` / ``set_tax_calculator`` (tests inject fixed
amounts this way).
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal

from protean.exceptions import ValidationError

from marketplace.utils.money import to_money

ZERO = Decimal("0")

SHIPPING_RATES = {
    "standard": Decimal("5.00"),
    "express": Decimal("15.00"),
    "overnight": Decimal("25.00"),
}
DEFAULT_SHIPPING_METHOD = "standard"
DEFAULT_TAX_RATE = Decimal("0")


def default_currency() -> str:
    return os.environ.get("MARKETPLACE_CURRENCY", "USD")


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    variant_id: str
    seller_id: str
    quantity: int
    unit_price: Decimal
    product_name: str | None = None
    variant_attributes: dict = field(default_factory=dict)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount_total: Decimal
    shipping_cost: Decimal
    tax_total: Decimal
    grand_total: Decimal
    currency: str

    def amounts(self) -> dict:
        """Component amounts and currency; the grand total is derived from them."""
        return {
            "subtotal": self.subtotal,
            "discount_total": self.discount_total,
            "shipping_cost": self.shipping_cost,
            "tax_total": self.tax_total,
            "currency": self.currency,
        }


# ---------------------------------------------------------------------------
# Default calculators
# ---------------------------------------------------------------------------
def flat_rate_shipping(shipping_method, lines, subtotal) -> Decimal:  # noqa: ARG001
    method = shipping_method or DEFAULT_SHIPPING_METHOD
    if method not in SHIPPING_RATES:
        raise ValidationError(
            {"shipping_method": [f"Unknown shipping method. Must be one of: {', '.join(SHIPPING_RATES)}"]}
        )
    return SHIPPING_RATES[method]


def flat_rate_tax(lines, taxable_amount, shipping_address) -> Decimal:  # noqa: ARG001
    return taxable_amount * DEFAULT_TAX_RATE


ShippingCalculator = Callable[[str | None, list[PricedLine], Decimal], Decimal]
TaxCalculator = Callable[[list[PricedLine], Decimal, object], Decimal]

_shipping_calculator: ShippingCalculator = flat_rate_shipping
_tax_calculator: TaxCalculator = flat_rate_tax


def get_shipping_calculator() -> ShippingCalculator:
    return _shipping_calculator


def set_shipping_calculator(calculator: ShippingCalculator) -> None:
    global _shipping_calculator
    _shipping_calculator = calculator


def get_tax_calculator() -> TaxCalculator:
    return _tax_calculator


def set_tax_calculator(calculator: TaxCalculator) -> None:
    global _tax_calculator
    _tax_calculator = calculator


def reset_calculators() -> None:
    global _shipping_calculator, _tax_calculator
    _shipping_calculator = flat_rate_shipping
    _tax_calculator = flat_rate_tax


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------
def calculate_totals(
    lines,
    shipping_method=None,
    shipping_address=None,
    discount=ZERO,
    currency=None,
    shipping_calculator=None,
    tax_calculator=None,
) -> PriceBreakdown:
    """Price a checkout.

    The discount is capped at the subtotal and tax is charged on the
    discounted subtotal.
    """
    shipping_calculator = shipping_calculator or _shipping_calculator
    tax_calculator = tax_calculator or _tax_calculator

    subtotal = sum((line.line_total for line in lines), ZERO)
    discount_total = min(to_money(discount), subtotal)
    if discount_total < ZERO:
        raise ValidationError({"discount": ["Discount cannot be negative"]})

    shipping_cost = to_money(shipping_calculator(shipping_method, lines, subtotal))
    tax_total = to_money(tax_calculator(lines, subtotal - discount_total, shipping_address))
    if shipping_cost < ZERO or tax_total < ZERO:
        raise ValidationError({"pricing": ["Shipping and tax must not be negative"]})

    grand_total = subtotal - discount_total + shipping_cost + tax_total

    return PriceBreakdown(
        subtotal=subtotal,
        discount_total=discount_total,
        shipping_cost=shipping_cost,
        tax_total=tax_total,
        grand_total=grand_total,
        currency=currency or default_currency(),
    )
