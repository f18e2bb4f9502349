"""Schema helpers for SQL-backed protean providers.

The memory provider keeps no schema, so both helpers are no-ops for it.
"""

from collections.abc import Iterator

from protean.domain import Domain
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

SQL_PROVIDERS = ("sqlite", "postgresql")


def _sql_providers(domain: Domain) -> Iterator[tuple[object, Engine]]:
    for provider in domain.providers.values():
        if provider.conn_info["provider"] in SQL_PROVIDERS:
            yield provider, create_engine(provider.conn_info["database_uri"])


def _persisted_classes(domain: Domain, provider_name: str) -> list[type]:
    records = list(domain.registry.aggregates.values()) + list(domain.registry.entities.values())
    return [record.cls for record in records if record.cls.meta_.provider == provider_name]


def setup_db(domain: Domain) -> None:
    """Create tables for carts, orders and returns on every SQL provider."""
    with domain.domain_context():
        for provider, engine in _sql_providers(domain):
            # Building the DAO registers the model on the provider's metadata
            for cls in _persisted_classes(domain, provider.name):
                domain.repository_for(cls)._dao  # noqa: B018
            provider._metadata.create_all(engine)
            engine.dispose()


def drop_db(domain: Domain) -> None:
    with domain.domain_context():
        for provider, engine in _sql_providers(domain):
            provider._metadata.drop_all(engine)
            engine.dispose()
