"""Catalog adapter factory.

Uses FakeCatalog by default. Other adapters are selected through the
CATALOG_ADAPTER environment variable.
"""

import os

from marketplace.collaborators.catalog.port import CatalogPort

_catalog_instance: CatalogPort | None = None


def get_catalog() -> CatalogPort:
    """Return the configured catalog adapter (singleton)."""
    global _catalog_instance
    if _catalog_instance is None:
        adapter = os.environ.get("CATALOG_ADAPTER", "fake")
        if adapter == "fake":
            from marketplace.collaborators.catalog.fake_adapter import FakeCatalog

            _catalog_instance = FakeCatalog()
        else:
            raise ValueError(f"Unknown catalog adapter: {adapter}")
    return _catalog_instance


def set_catalog(catalog: CatalogPort) -> None:
    """Override the active catalog adapter (useful for tests)."""
    global _catalog_instance
    _catalog_instance = catalog


def reset_catalog() -> None:
    """Reset the catalog singleton."""
    global _catalog_instance
    _catalog_instance = None
