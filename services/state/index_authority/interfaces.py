"""Transport-neutral protocol interfaces used by Index Authority Service."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any, Protocol

from services.state.index_authority.domain import (
    LabeledRecord,
    ScopeKind,
    ScopeRecord,
    StoredRecord,
)


class IndexRepository(Protocol):
    """Persistence for scopes, records, the tag index and labels."""

    def get_scope(self, *, kind: ScopeKind, scope_id: str) -> ScopeRecord | None:
        """Read one scope by kind and id."""

    def register_scope(
        self, *, kind: ScopeKind, controller: str | None, scope_id: str | None = None
    ) -> ScopeRecord:
        """Create a scope when missing and return the stored scope."""

    def insert_record(
        self,
        *,
        scope_seq: int,
        record_id: str,
        tags: Sequence[str],
        data: Mapping[str, Any],
        tombstone: bool | None,
        auto_label_viewer: str | None,
    ) -> tuple[StoredRecord, bool]:
        """Insert one record unless present; return it and whether it was created."""

    def candidate_positions(
        self, *, scope_seq: int, tags: Sequence[str], after: int
    ) -> Iterator[int]:
        """Yield distinct ascending positions of records having any of ``tags``."""

    def query_records(
        self,
        *,
        scope_seq: int,
        tags: Sequence[str],
        after: int,
        viewer: str | None,
        limit: int,
    ) -> list[LabeledRecord]:
        """Return up to ``limit`` visible tag matches after ``after``."""

    def export_records(
        self, *, scope_seq: int, after: int, limit: int
    ) -> list[StoredRecord]:
        """Return up to ``limit`` records after ``after`` without filtering."""

    def labels_for(
        self, *, scope_seq: int, record_ids: Sequence[str], viewer: str
    ) -> dict[str, int]:
        """Return the viewer's label per record id, ``0`` when absent."""

    def set_label(
        self, *, scope_seq: int, record_id: str, viewer: str, label: int
    ) -> bool:
        """Upsert one label; return ``False`` when the record is not in the scope."""


class RecordDataFilter(Protocol):
    """Compiles structural filters applied to record data after pagination."""

    def compile(self, schema: Mapping[str, Any]) -> Callable[[Any], bool]:
        """Return a predicate for ``schema``; raise ``SchemaFilterError`` if invalid."""
