"""Shared Postgres substrate handle with a readiness probe."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Engine

from resources.substrates.postgres.config import PostgresSettings
from resources.substrates.postgres.engine import create_postgres_engine
from resources.substrates.postgres.health import ping


class PostgresHealthStatus(BaseModel):
    """Postgres readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


class SharedPostgresSubstrate:
    """Owns one engine and reports whether it can reach the database."""

    def __init__(self, *, settings: PostgresSettings) -> None:
        self._settings = settings
        self._engine = create_postgres_engine(settings)

    @property
    def engine(self) -> Engine:
        return self._engine

    def health(self) -> PostgresHealthStatus:
        ready = ping(self._engine, timeout_seconds=self._settings.health_timeout_seconds)
        return PostgresHealthStatus(
            ready=ready, detail="ok" if ready else "postgres ping failed"
        )
