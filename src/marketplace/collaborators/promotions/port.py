"""Promotion port: supplies the discount for a checkout."""

from abc import ABC, abstractmethod
from decimal import Decimal


class PromotionsPort(ABC):
    @abstractmethod
    def discount_for(self, buyer_id: str, discount_code: str | None, subtotal: Decimal) -> Decimal:
        """Return the discount amount for this checkout; zero when nothing applies.

        An unknown ``discount_code`` raises ``ValidationError``.
        """
        ...
