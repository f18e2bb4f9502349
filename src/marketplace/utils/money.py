"""Money helpers.

Amounts are ``Decimal`` in domain code and integer cents in storage, so sums
of stored components compare exactly. Floats only appear at the API and
event boundary.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value) -> int | None:
    if value is None:
        return None
    return int(to_money(value) * 100)


def from_cents(cents) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(CENT)


def as_float(amount) -> float | None:
    return None if amount is None else float(amount)
