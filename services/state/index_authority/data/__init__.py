"""Data-layer exports for Index Authority Service."""

from services.state.index_authority.data.repository import PostgresIndexRepository
from services.state.index_authority.data.runtime import IndexPostgresRuntime

__all__ = ["IndexPostgresRuntime", "PostgresIndexRepository"]
