"""In-memory catalog for development and testing.

Variants are registered up front with ``add_variant``. Sale prices apply only
while their window is open, mirroring how the storefront prices a variant.
``configure(available=False)`` makes every lookup fail like an unreachable
catalog service.
"""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from marketplace.collaborators.catalog.port import CatalogPort, VariantInfo
from marketplace.utils.resilience import CollaboratorUnavailable


@dataclass
class _VariantRecord:
    product_id: str
    variant_id: str
    seller_id: str
    product_name: str
    price: float
    currency: str
    is_active: bool
    stock: int
    attributes: dict = field(default_factory=dict)
    sale_price: float | None = None
    sale_starts_at: datetime | None = None
    sale_ends_at: datetime | None = None

    def effective_price(self, now: datetime) -> float:
        if self.sale_price is None:
            return self.price
        if self.sale_starts_at and now < self.sale_starts_at:
            return self.price
        if self.sale_ends_at and now > self.sale_ends_at:
            return self.price
        return self.sale_price


class FakeCatalog(CatalogPort):
    """Configurable in-memory catalog."""

    def __init__(self) -> None:
        self._variants: dict[tuple[str, str], _VariantRecord] = {}
        self.available = True
        self.calls: list[tuple[str, str]] = []

    def configure(self, available: bool = True) -> None:
        self.available = available

    def add_variant(
        self,
        product_id: str,
        variant_id: str,
        seller_id: str,
        price: float,
        stock: int = 100,
        is_active: bool = True,
        product_name: str | None = None,
        attributes: dict | None = None,
        currency: str = "USD",
        sale_price: float | None = None,
        sale_starts_at: datetime | None = None,
        sale_ends_at: datetime | None = None,
    ) -> None:
        self._variants[(str(product_id), str(variant_id))] = _VariantRecord(
            product_id=str(product_id),
            variant_id=str(variant_id),
            seller_id=str(seller_id),
            product_name=product_name or f"Product {product_id}",
            price=price,
            currency=currency,
            is_active=is_active,
            stock=stock,
            attributes=attributes or {},
            sale_price=sale_price,
            sale_starts_at=sale_starts_at,
            sale_ends_at=sale_ends_at,
        )

    def update_variant(self, product_id: str, variant_id: str, **changes) -> None:
        key = (str(product_id), str(variant_id))
        self._variants[key] = replace(self._variants[key], **changes)

    def remove_variant(self, product_id: str, variant_id: str) -> None:
        self._variants.pop((str(product_id), str(variant_id)), None)

    def resolve_variant(self, product_id: str, variant_id: str) -> VariantInfo | None:
        self.calls.append((str(product_id), str(variant_id)))
        if not self.available:
            raise CollaboratorUnavailable("Catalog service unreachable")

        record = self._variants.get((str(product_id), str(variant_id)))
        if record is None:
            return None

        return VariantInfo(
            product_id=record.product_id,
            variant_id=record.variant_id,
            seller_id=record.seller_id,
            product_name=record.product_name,
            price=record.effective_price(datetime.now(UTC)),
            currency=record.currency,
            is_active=record.is_active,
            stock=record.stock,
            attributes=dict(record.attributes),
        )
