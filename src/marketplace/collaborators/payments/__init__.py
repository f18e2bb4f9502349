"""Payment collaborator factory.

get_payments() / set_payments() swap implementations. FakePayments is the
only adapter shipped; PAYMENT_ADAPTER selects it.
"""

import os

from marketplace.collaborators.payments.port import PaymentsPort

_current_payments: PaymentsPort | None = None


def get_payments() -> PaymentsPort:
    global _current_payments
    if _current_payments is None:
        adapter = os.environ.get("PAYMENT_ADAPTER", "fake")
        if adapter == "fake":
            from marketplace.collaborators.payments.fake_adapter import FakePayments

            _current_payments = FakePayments()
        else:
            raise ValueError(f"Unknown payment adapter: {adapter}")
    return _current_payments


def set_payments(payments: PaymentsPort) -> None:
    """Override the active payment collaborator (useful for tests)."""
    global _current_payments
    _current_payments = payments


def reset_payments() -> None:
    global _current_payments
    _current_payments = None
