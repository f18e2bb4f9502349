"""Catalog port (abstract interface).

The marketplace core never reads product or variant records directly. It asks
the catalog collaborator to resolve a (product, variant) pair into the
current effective price, availability and owning seller.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class VariantInfo:
    """Current catalog view of a purchasable product variant."""

    product_id: str
    variant_id: str
    seller_id: str
    product_name: str
    price: float
    currency: str = "USD"
    is_active: bool = True
    stock: int = 0
    attributes: dict = field(default_factory=dict)


class CatalogPort(ABC):
    """Abstract catalog lookup interface."""

    @abstractmethod
    def resolve_variant(self, product_id: str, variant_id: str) -> VariantInfo | None:
        """Return the variant's current data, or None when it does not exist."""
        ...
