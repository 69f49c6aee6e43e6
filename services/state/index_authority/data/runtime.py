"""IAS-owned Postgres runtime wiring."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from packages.herald_shared.config import HeraldSettings
from packages.herald_shared.manifest import component_id_to_schema_name
from resources.substrates.postgres import (
    ServiceSchemaSessionProvider,
    create_postgres_engine,
    create_session_factory,
    ping,
    resolve_postgres_settings,
)
from services.state.index_authority.component import SERVICE_COMPONENT_ID


@dataclass(frozen=True)
class IndexPostgresRuntime:
    """Engine and schema-scoped session provider for IAS tables."""

    engine: Engine
    session_factory: sessionmaker[Session]
    schema_sessions: ServiceSchemaSessionProvider

    @classmethod
    def from_settings(cls, settings: HeraldSettings) -> "IndexPostgresRuntime":
        engine = create_postgres_engine(resolve_postgres_settings(settings))
        session_factory = create_session_factory(engine)
        return cls(
            engine=engine,
            session_factory=session_factory,
            schema_sessions=ServiceSchemaSessionProvider(
                session_factory=session_factory,
                schema=index_postgres_schema(),
            ),
        )

    def is_healthy(self) -> bool:
        return ping(self.engine)


def index_postgres_schema() -> str:
    """Resolve canonical IAS schema name from component identity."""
    return component_id_to_schema_name(SERVICE_COMPONENT_ID)
