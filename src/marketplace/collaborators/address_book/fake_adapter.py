"""In-memory address book for development and testing.

A buyer has at most one default shipping and one default billing address.
``save_address`` moves a default explicitly: the previous default is unset
and the new one set inside a single locked write, so readers never see two
defaults or none in between.
"""

import threading
from copy import deepcopy
from uuid import uuid4

from protean.exceptions import ValidationError

from marketplace.collaborators.address_book.port import AddressBookPort
from marketplace.utils.resilience import CollaboratorUnavailable

ADDRESS_TYPES = ("shipping", "billing", "business")


class FakeAddressBook(AddressBookPort):
    def __init__(self) -> None:
        self._addresses: dict[str, dict] = {}
        self._lock = threading.Lock()
        self.available = True

    def configure(self, available: bool = True) -> None:
        self.available = available

    def save_address(
        self,
        buyer_id: str,
        address_line1: str,
        city: str,
        postal_code: str,
        country: str,
        address_id: str | None = None,
        address_type: str = "shipping",
        contact_name: str | None = None,
        contact_phone: str | None = None,
        address_line2: str | None = None,
        state_province_region: str | None = None,
        make_default_shipping: bool = False,
        make_default_billing: bool = False,
    ) -> str:
        """Create or replace an address and return its id."""
        if address_type not in ADDRESS_TYPES:
            raise ValidationError({"address_type": [f"Must be one of: {', '.join(ADDRESS_TYPES)}"]})

        address_id = address_id or str(uuid4())
        with self._lock:
            existing = self._addresses.get(address_id)
            record = {
                "id": address_id,
                "buyer_id": str(buyer_id),
                "address_type": address_type,
                "contact_name": contact_name,
                "contact_phone": contact_phone,
                "address_line1": address_line1,
                "address_line2": address_line2,
                "city": city,
                "state_province_region": state_province_region,
                "postal_code": postal_code,
                "country": country,
                "is_default_shipping": existing["is_default_shipping"] if existing else False,
                "is_default_billing": existing["is_default_billing"] if existing else False,
            }
            self._addresses[address_id] = record

            if make_default_shipping:
                self._move_default(str(buyer_id), address_id, "is_default_shipping")
            if make_default_billing:
                self._move_default(str(buyer_id), address_id, "is_default_billing")

        return address_id

    def _move_default(self, buyer_id: str, address_id: str, flag: str) -> None:
        for record in self._addresses.values():
            if record["buyer_id"] == buyer_id and record[flag]:
                record[flag] = False
        self._addresses[address_id][flag] = True

    def default_address(self, buyer_id: str, kind: str = "shipping") -> dict | None:
        flag = "is_default_shipping" if kind == "shipping" else "is_default_billing"
        with self._lock:
            for record in self._addresses.values():
                if record["buyer_id"] == str(buyer_id) and record[flag]:
                    return deepcopy(record)
        return None

    def get_address(self, buyer_id: str, address_id: str) -> dict | None:
        if not self.available:
            raise CollaboratorUnavailable("Address service unreachable")

        with self._lock:
            record = self._addresses.get(str(address_id))
            if record is None or record["buyer_id"] != str(buyer_id):
                return None
            return deepcopy(record)
