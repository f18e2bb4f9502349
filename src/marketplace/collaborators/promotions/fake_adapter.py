"""In-memory promotions: fixed-amount or percentage discount codes."""

from decimal import Decimal

from protean.exceptions import ValidationError

from marketplace.collaborators.promotions.port import PromotionsPort


class NoPromotions(PromotionsPort):
    """Default adapter: no promotions run and no discount code is accepted."""

    def discount_for(self, buyer_id, discount_code, subtotal):
        if discount_code:
            raise ValidationError({"discount_code": [f"Unknown discount code: {discount_code}"]})
        return Decimal("0")


class FakePromotions(PromotionsPort):
    def __init__(self) -> None:
        self._codes: dict[str, tuple[str, Decimal]] = {}

    def add_code(self, code: str, amount=None, percent=None) -> None:
        if (amount is None) == (percent is None):
            raise ValueError("Give exactly one of amount or percent")
        if amount is not None:
            self._codes[code.upper()] = ("amount", Decimal(str(amount)))
        else:
            self._codes[code.upper()] = ("percent", Decimal(str(percent)))

    def discount_for(self, buyer_id, discount_code, subtotal):
        if not discount_code:
            return Decimal("0")

        promotion = self._codes.get(discount_code.upper())
        if promotion is None:
            raise ValidationError({"discount_code": [f"Unknown discount code: {discount_code}"]})

        kind, value = promotion
        if kind == "percent":
            return subtotal * value / Decimal("100")
        return value
