"""Address book adapter factory."""

import os

from marketplace.collaborators.address_book.port import AddressBookPort

_address_book: AddressBookPort | None = None


def get_address_book() -> AddressBookPort:
    """Return the configured address book (FakeAddressBook unless ADDRESS_BOOK_ADAPTER says otherwise)."""
    global _address_book
    if _address_book is None:
        adapter = os.environ.get("ADDRESS_BOOK_ADAPTER", "fake")
        if adapter == "fake":
            from marketplace.collaborators.address_book.fake_adapter import FakeAddressBook

            _address_book = FakeAddressBook()
        else:
            raise ValueError(f"Unknown address book adapter: {adapter}")
    return _address_book


def set_address_book(address_book: AddressBookPort) -> None:
    global _address_book
    _address_book = address_book


def reset_address_book() -> None:
    global _address_book
    _address_book = None
