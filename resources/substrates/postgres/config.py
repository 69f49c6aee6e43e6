"""Typed settings for the shared Postgres substrate."""

from __future__ import annotations

from typing import Literal
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, model_validator

from packages.herald_shared.config import HeraldSettings, resolve_component_settings

SslMode = Literal["disable", "allow", "prefer", "require", "verify-ca", "verify-full"]


class PostgresSettings(BaseModel):
    """Connection and pool options under ``components.substrate.postgres``.

    ``url`` wins when set; otherwise it is assembled from the split
    host/port/database/user/password fields.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = ""
    host: str = "postgres"
    port: int = Field(default=5432, gt=0, lt=65536)
    database: str = "herald"
    user: str = "herald"
    password: str = "herald"
    pool_size: int = Field(default=5, gt=0)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout_seconds: float = Field(default=30.0, gt=0)
    pool_pre_ping: bool = True
    connect_timeout_seconds: float = Field(default=10.0, gt=0)
    health_timeout_seconds: float = Field(default=1.0, gt=0)
    sslmode: SslMode = "prefer"

    @model_validator(mode="after")
    def _resolve_url(self) -> "PostgresSettings":
        if self.url.strip():
            return self
        for name in ("host", "database", "user"):
            if not getattr(self, name).strip():
                raise ValueError(f"postgres.{name} is required when postgres.url is unset")
        url = (
            "postgresql+psycopg://"
            f"{quote_plus(self.user)}:{quote_plus(self.password)}"
            f"@{self.host}:{self.port}/{quote_plus(self.database)}"
        )
        object.__setattr__(self, "url", url)
        return self


def resolve_postgres_settings(settings: HeraldSettings) -> PostgresSettings:
    """Resolve ``components.substrate.postgres``."""
    return resolve_component_settings(
        settings=settings,
        component_id="substrate_postgres",
        model=PostgresSettings,
    )
