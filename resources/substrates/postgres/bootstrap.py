"""Create every registered service schema before migrations run.

Run as ``python -m resources.substrates.postgres.bootstrap``.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass

from sqlalchemy import text

from packages.herald_shared.config import HeraldSettings, load_settings
from packages.herald_shared.logging import configure_logging, get_logger
from packages.herald_shared.manifest import get_registry
from resources.substrates.postgres.config import resolve_postgres_settings
from resources.substrates.postgres.engine import create_postgres_engine

_LOGGER = get_logger(__name__)

COMPONENT_MODULES: tuple[str, ...] = (
    "resources.substrates.postgres.component",
    "services.state.index_authority.component",
)


@dataclass(frozen=True)
class BootstrapResult:
    """What one bootstrap run imported and provisioned."""

    imported_components: tuple[str, ...]
    provisioned_schemas: tuple[str, ...]


def bootstrap_service_schemas(settings: HeraldSettings | None = None) -> BootstrapResult:
    """Import component declarations and ``CREATE SCHEMA`` for each service."""
    resolved = load_settings() if settings is None else settings
    for module in COMPONENT_MODULES:
        importlib.import_module(module)

    registry = get_registry()
    registry.assert_valid()
    services = registry.list_services()
    if not services:
        raise RuntimeError("no registered services discovered; refusing schema bootstrap")

    engine = create_postgres_engine(resolve_postgres_settings(resolved))
    try:
        with engine.begin() as connection:
            for service in services:
                connection.execute(text(f"CREATE SCHEMA IF NOT EXISTS {service.schema_name}"))
                _LOGGER.info("provisioned schema %s", service.schema_name)
    finally:
        engine.dispose()

    return BootstrapResult(
        imported_components=COMPONENT_MODULES,
        provisioned_schemas=tuple(service.schema_name for service in services),
    )


def main() -> None:
    settings = load_settings()
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
    )
    bootstrap_service_schemas(settings)


if __name__ == "__main__":
    main()
