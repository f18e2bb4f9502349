"""Address book port (abstract interface).

Addresses are owned and edited outside the marketplace core. Checkout only
needs to read one address belonging to the buyer.
"""

from abc import ABC, abstractmethod


class AddressBookPort(ABC):
    """Abstract address lookup interface."""

    @abstractmethod
    def get_address(self, buyer_id: str, address_id: str) -> dict | None:
        """Return the buyer's address as a plain dict, or None if it is not theirs."""
        ...
