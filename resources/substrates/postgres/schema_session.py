"""Transactional sessions pinned to one service-owned Postgres schema."""

from __future__ import annotations

import re
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from resources.substrates.postgres.session import transactional_session

_SCHEMA_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


class ServiceSchemaSessionProvider:
    """Hand out sessions whose ``search_path`` starts at the owned schema."""

    def __init__(self, *, session_factory: sessionmaker[Session], schema: str) -> None:
        if not _SCHEMA_RE.fullmatch(schema or ""):
            raise ValueError(f"invalid postgres schema name: {schema!r}")
        self._session_factory = session_factory
        self._schema = schema

    @property
    def schema(self) -> str:
        return self._schema

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield one transaction with ``SET LOCAL search_path`` applied."""
        with transactional_session(self._session_factory) as db:
            db.execute(text(f"SET LOCAL search_path TO {self._schema}, public"))
            yield db
