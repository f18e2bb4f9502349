"""Snapshot buyer-owned checkout inputs into order value objects.

Addresses and payment methods are copied, not referenced: the order keeps
exactly what the buyer chose at checkout even if the originals are edited
or deleted afterwards.
"""

from protean.exceptions import ObjectNotFoundError

from marketplace.collaborators.address_book import get_address_book
from marketplace.collaborators.payments import get_payments
from marketplace.order.order import AddressSnapshot, PaymentMethodSnapshot
from marketplace.utils.resilience import call_collaborator


def snapshot_address(buyer_id, address_id, field="shipping_address_id") -> AddressSnapshot:
    address = call_collaborator("address_book", get_address_book().get_address, str(buyer_id), str(address_id))
    if address is None:
        raise ObjectNotFoundError({field: [f"Address {address_id} not found"]})

    return AddressSnapshot(
        address_id=str(address["id"]),
        address_type=address.get("address_type"),
        contact_name=address.get("contact_name"),
        contact_phone=address.get("contact_phone"),
        address_line1=address["address_line1"],
        address_line2=address.get("address_line2"),
        city=address["city"],
        state_province_region=address.get("state_province_region"),
        postal_code=address["postal_code"],
        country=address["country"],
    )


def snapshot_payment_method(buyer_id, payment_method_id) -> PaymentMethodSnapshot:
    method = call_collaborator("payments", get_payments().get_payment_method, str(buyer_id), str(payment_method_id))
    if method is None:
        raise ObjectNotFoundError({"payment_method_id": [f"Payment method {payment_method_id} not found"]})

    return PaymentMethodSnapshot(
        payment_method_id=method.id,
        gateway=method.gateway,
        type=method.type,
        card_brand=method.card_brand,
        last_four_digits=method.last_four_digits,
    )
