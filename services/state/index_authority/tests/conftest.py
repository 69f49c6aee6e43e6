"""Shared fixtures for Index Authority Service tests.

Repository and service tests run against in-memory SQLite through the same
SQLAlchemy Core statements used with Postgres.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from resources.substrates.postgres.session import (
    create_session_factory,
    transactional_session,
)
from services.state.index_authority.config import IndexAuthoritySettings
from services.state.index_authority.data.repository import PostgresIndexRepository
from services.state.index_authority.data.schema import metadata
from services.state.index_authority.domain import PUBLIC_SCOPE_ID, ScopeKind
from services.state.index_authority.filtering import JsonSchemaDataFilter
from services.state.index_authority.implementation import (
    DefaultIndexAuthorityService,
)


class SqliteSessionProvider:
    """Session provider double without Postgres ``search_path`` handling."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        with transactional_session(self._session_factory) as db:
            yield db


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine: Engine) -> PostgresIndexRepository:
    """Repository with the public indexer and inbox provisioned."""
    repo = PostgresIndexRepository(
        SqliteSessionProvider(create_session_factory(engine))  # type: ignore[arg-type]
    )
    for kind in ScopeKind:
        repo.register_scope(kind=kind, controller=None, scope_id=PUBLIC_SCOPE_ID)
    return repo


@pytest.fixture
def settings() -> IndexAuthoritySettings:
    return IndexAuthoritySettings(query_page_limit=3, export_page_limit=3)


@pytest.fixture
def service(
    repository: PostgresIndexRepository, settings: IndexAuthoritySettings
) -> DefaultIndexAuthorityService:
    return DefaultIndexAuthorityService(
        settings=settings,
        repository=repository,
        data_filter=JsonSchemaDataFilter(capacity=4),
    )
