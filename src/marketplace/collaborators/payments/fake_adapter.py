"""Configurable fake payment collaborator for development and testing.

Outcomes are set at runtime with ``configure``: ``authorized``, ``pending``,
``declined`` or ``unavailable`` (the last one simulates an unreachable
gateway). Authorizations are remembered per idempotency key and replayed.
"""

import threading
from uuid import uuid4

from marketplace.collaborators.payments.port import (
    AuthorizationResult,
    PaymentMethodRef,
    PaymentsPort,
    RefundResult,
)
from marketplace.utils.resilience import CollaboratorUnavailable

OUTCOMES = ("authorized", "pending", "declined", "unavailable")


class FakePayments(PaymentsPort):
    """Configurable fake payment gateway and method vault."""

    def __init__(self) -> None:
        self.outcome: str = "authorized"
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []
        self._methods: dict[str, PaymentMethodRef] = {}
        self._authorizations: dict[str, AuthorizationResult] = {}
        self._lock = threading.Lock()

    def configure(self, outcome: str = "authorized", failure_reason: str = "Card declined") -> None:
        if outcome not in OUTCOMES:
            raise ValueError(f"Unknown payment outcome: {outcome}")
        self.outcome = outcome
        self.failure_reason = failure_reason

    def register_method(
        self,
        buyer_id: str,
        payment_method_id: str | None = None,
        gateway: str = "stripe",
        type: str = "card",
        card_brand: str | None = "visa",
        last_four_digits: str | None = "4242",
    ) -> PaymentMethodRef:
        method = PaymentMethodRef(
            id=payment_method_id or str(uuid4()),
            buyer_id=str(buyer_id),
            gateway=gateway,
            type=type,
            token=f"tok_{uuid4().hex[:16]}",
            card_brand=card_brand,
            last_four_digits=last_four_digits,
        )
        self._methods[method.id] = method
        return method

    def get_payment_method(self, buyer_id: str, payment_method_id: str) -> PaymentMethodRef | None:
        self.calls.append(
            {"method": "get_payment_method", "buyer_id": buyer_id, "payment_method_id": payment_method_id}
        )
        if self.outcome == "unavailable":
            raise CollaboratorUnavailable("Payment service unreachable")

        method = self._methods.get(str(payment_method_id))
        if method is None or method.buyer_id != str(buyer_id):
            return None
        return method

    def authorize(
        self,
        payment_method_id: str,
        amount: float,
        currency: str,
        idempotency_key: str,
    ) -> AuthorizationResult:
        self.calls.append(
            {
                "method": "authorize",
                "payment_method_id": payment_method_id,
                "amount": amount,
                "currency": currency,
                "idempotency_key": idempotency_key,
            }
        )
        if self.outcome == "unavailable":
            raise CollaboratorUnavailable("Payment service unreachable")

        with self._lock:
            if idempotency_key in self._authorizations:
                return self._authorizations[idempotency_key]

            if self.outcome == "authorized":
                result = AuthorizationResult(status="authorized", transaction_id=f"fake_txn_{uuid4().hex[:12]}")
            elif self.outcome == "pending":
                result = AuthorizationResult(status="pending", transaction_id=f"fake_txn_{uuid4().hex[:12]}")
            else:
                result = AuthorizationResult(status="declined", failure_reason=self.failure_reason)

            self._authorizations[idempotency_key] = result
            return result

    def refund(self, transaction_id: str | None, amount: float, reason: str) -> RefundResult:
        self.calls.append(
            {"method": "refund", "transaction_id": transaction_id, "amount": amount, "reason": reason}
        )
        if self.outcome == "unavailable":
            raise CollaboratorUnavailable("Payment service unreachable")
        if self.outcome == "declined":
            return RefundResult(success=False, failure_reason=self.failure_reason)
        return RefundResult(success=True, refund_id=f"fake_ref_{uuid4().hex[:12]}")

    def authorization_count(self) -> int:
        return sum(1 for call in self.calls if call["method"] == "authorize")
