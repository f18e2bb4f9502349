"""Payment collaborator port (abstract interface).

Stored payment methods belong to the buyer and live outside the marketplace.
Checkout reads one method and asks the gateway to authorize the order total;
admin refunds go back through the same port.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentMethodRef:
    """Non-sensitive view of a stored payment method."""

    id: str
    buyer_id: str
    gateway: str
    type: str
    token: str
    card_brand: str | None = None
    last_four_digits: str | None = None


@dataclass(frozen=True)
class AuthorizationResult:
    """Outcome of an authorization attempt: authorized, pending or declined."""

    status: str
    transaction_id: str | None = None
    failure_reason: str | None = None

    @property
    def authorized(self) -> bool:
        return self.status == "authorized"


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_id: str | None = None
    failure_reason: str | None = None


class PaymentsPort(ABC):
    """Abstract payment interface."""

    @abstractmethod
    def get_payment_method(self, buyer_id: str, payment_method_id: str) -> PaymentMethodRef | None:
        """Return the buyer's stored method, or None if it is not theirs."""
        ...

    @abstractmethod
    def authorize(
        self,
        payment_method_id: str,
        amount: float,
        currency: str,
        idempotency_key: str,
    ) -> AuthorizationResult:
        """Authorize ``amount``. Repeating a call with the same key must not charge twice."""
        ...

    @abstractmethod
    def refund(self, transaction_id: str | None, amount: float, reason: str) -> RefundResult: ...
