"""Authoritative Postgres repository for Index Authority Service state."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import and_, null, or_, select, update
from sqlalchemy import insert as sa_insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from packages.herald_shared.ids import generate_ulid_str
from resources.substrates.postgres.schema_session import ServiceSchemaSessionProvider
from services.state.index_authority.domain import (
    LABEL_ACCEPTED,
    LABEL_NEUTRAL,
    LabeledRecord,
    ScopeKind,
    ScopeRecord,
    StoredRecord,
)
from services.state.index_authority.errors import (
    RecordConsistencyError,
    ScopeNotFoundError,
)
from services.state.index_authority.interfaces import IndexRepository

from .schema import record_labels, record_tags, records, scopes

_RECORD_COLUMNS = (
    records.c.record_id,
    records.c.position,
    records.c.tombstone,
    records.c.tags,
    records.c.data,
    records.c.created_at,
)


class PostgresIndexRepository(IndexRepository):
    """SQL repository over IAS-owned schema tables."""

    def __init__(self, sessions: ServiceSchemaSessionProvider) -> None:
        self._sessions = sessions

    def get_scope(self, *, kind: ScopeKind, scope_id: str) -> ScopeRecord | None:
        with self._sessions.session() as session:
            row = (
                session.execute(
                    select(scopes).where(
                        scopes.c.kind == kind.value, scopes.c.scope_id == scope_id
                    )
                )
                .mappings()
                .one_or_none()
            )
            return None if row is None else _to_scope(row)

    def register_scope(
        self, *, kind: ScopeKind, controller: str | None, scope_id: str | None = None
    ) -> ScopeRecord:
        """Create a scope when missing; new scope ids default to a ULID."""
        resolved_id = scope_id or generate_ulid_str()
        with self._sessions.session() as session:
            stmt = _insert_for(session, scopes).values(
                kind=kind.value,
                scope_id=resolved_id,
                controller=controller,
                position=0,
                created_at=_now(),
            )
            session.execute(stmt.on_conflict_do_nothing(index_elements=["kind", "scope_id"]))
            row = (
                session.execute(
                    select(scopes).where(
                        scopes.c.kind == kind.value, scopes.c.scope_id == resolved_id
                    )
                )
                .mappings()
                .one()
            )
            return _to_scope(row)

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
        """Insert one record, its tag rows and auto-label in one transaction.

        The scope row is locked first so position assignment is serialized
        per scope. A conflicting ``(scope_seq, record_id)`` is a duplicate and
        consumes no position.
        """
        with self._sessions.session() as session:
            current = session.execute(
                select(scopes.c.position)
                .where(scopes.c.seq == scope_seq)
                .with_for_update()
            ).scalar_one_or_none()
            if current is None:
                raise ScopeNotFoundError(f"scope not found: seq={scope_seq}")

            position = int(current) + 1
            sorted_tags = sorted(tags)
            created_at = _now()
            stmt = (
                _insert_for(session, records)
                .values(
                    scope_seq=scope_seq,
                    record_id=record_id,
                    position=position,
                    tombstone=tombstone,
                    tags=sorted_tags,
                    data=dict(data),
                    created_at=created_at,
                )
                .on_conflict_do_nothing(index_elements=["scope_seq", "record_id"])
                .returning(*_RECORD_COLUMNS)
            )
            inserted = session.execute(stmt).mappings().one_or_none()

            if inserted is None:
                existing = (
                    session.execute(
                        select(*_RECORD_COLUMNS).where(
                            records.c.scope_seq == scope_seq,
                            records.c.record_id == record_id,
                        )
                    )
                    .mappings()
                    .one_or_none()
                )
                if existing is None:
                    raise RecordConsistencyError(
                        f"duplicate record vanished during insert: {record_id}"
                    )
                return _to_record(existing), False

            session.execute(
                update(scopes).where(scopes.c.seq == scope_seq).values(position=position)
            )
            if sorted_tags:
                session.execute(
                    sa_insert(record_tags),
                    [
                        {"scope_seq": scope_seq, "tag": tag, "position": position}
                        for tag in sorted_tags
                    ],
                )
            if auto_label_viewer is not None:
                _upsert_label(
                    session,
                    scope_seq=scope_seq,
                    record_id=record_id,
                    viewer=auto_label_viewer,
                    label=LABEL_ACCEPTED,
                )
            return _to_record(inserted), True

    def candidate_positions(
        self, *, scope_seq: int, tags: Sequence[str], after: int
    ) -> Iterator[int]:
        """Stream matching positions on their own, outside the record join.

        ``query_records`` embeds the same ``_candidates`` select as a CTE; this
        is the standalone tag index read.
        """
        with self._sessions.session() as session:
            result = session.execute(
                _candidates(scope_seq=scope_seq, tags=tags, after=after).order_by(
                    record_tags.c.position
                )
            )
            for position in result.scalars():
                yield int(position)

    def query_records(
        self,
        *,
        scope_seq: int,
        tags: Sequence[str],
        after: int,
        viewer: str | None,
        limit: int,
    ) -> list[LabeledRecord]:
        """Join tag candidates to records and the viewer's labels.

        With a viewer, records the viewer labelled with anything other than
        neutral or accepted are dropped. Anonymous queries skip labels.
        """
        candidates = _candidates(scope_seq=scope_seq, tags=tags, after=after).cte(
            "candidates"
        )
        joined = candidates.join(
            records,
            and_(
                records.c.scope_seq == scope_seq,
                records.c.position == candidates.c.position,
            ),
        )
        if viewer is None:
            stmt = select(*_RECORD_COLUMNS, null().label("label")).select_from(joined)
        else:
            joined = joined.outerjoin(
                record_labels,
                and_(
                    record_labels.c.scope_seq == records.c.scope_seq,
                    record_labels.c.record_id == records.c.record_id,
                    record_labels.c.viewer == viewer,
                ),
            )
            stmt = (
                select(*_RECORD_COLUMNS, record_labels.c.label)
                .select_from(joined)
                .where(
                    or_(
                        record_labels.c.label.is_(None),
                        record_labels.c.label.in_((LABEL_NEUTRAL, LABEL_ACCEPTED)),
                    )
                )
            )

        with self._sessions.session() as session:
            rows = session.execute(
                stmt.order_by(records.c.position).limit(limit)
            ).mappings()
            return [
                LabeledRecord(
                    record=_to_record(row),
                    label=LABEL_NEUTRAL if row["label"] is None else int(row["label"]),
                )
                for row in rows
            ]

    def export_records(
        self, *, scope_seq: int, after: int, limit: int
    ) -> list[StoredRecord]:
        with self._sessions.session() as session:
            rows = session.execute(
                select(*_RECORD_COLUMNS)
                .where(records.c.scope_seq == scope_seq, records.c.position > after)
                .order_by(records.c.position)
                .limit(limit)
            ).mappings()
            return [_to_record(row) for row in rows]

    def labels_for(
        self, *, scope_seq: int, record_ids: Sequence[str], viewer: str
    ) -> dict[str, int]:
        """Return the viewer's label per record id, neutral when unset.

        Standalone label read; ``query_records`` joins labels inline.
        """
        labels = {record_id: LABEL_NEUTRAL for record_id in record_ids}
        if not labels:
            return labels
        with self._sessions.session() as session:
            rows = session.execute(
                select(record_labels.c.record_id, record_labels.c.label).where(
                    record_labels.c.scope_seq == scope_seq,
                    record_labels.c.viewer == viewer,
                    record_labels.c.record_id.in_(list(labels)),
                )
            )
            for record_id, label in rows:
                labels[str(record_id)] = int(label)
        return labels

    def set_label(
        self, *, scope_seq: int, record_id: str, viewer: str, label: int
    ) -> bool:
        with self._sessions.session() as session:
            exists = session.execute(
                select(records.c.position).where(
                    records.c.scope_seq == scope_seq, records.c.record_id == record_id
                )
            ).scalar_one_or_none()
            if exists is None:
                return False
            _upsert_label(
                session,
                scope_seq=scope_seq,
                record_id=record_id,
                viewer=viewer,
                label=label,
            )
            return True


def _candidates(*, scope_seq: int, tags: Sequence[str], after: int) -> Any:
    """Distinct positions in ``scope_seq`` tagged with any of ``tags``."""
    return (
        select(record_tags.c.position)
        .where(
            record_tags.c.scope_seq == scope_seq,
            record_tags.c.tag.in_(list(tags)),
            record_tags.c.position > after,
        )
        .distinct()
    )


def _upsert_label(
    session: Session, *, scope_seq: int, record_id: str, viewer: str, label: int
) -> None:
    stmt = _insert_for(session, record_labels).values(
        scope_seq=scope_seq,
        record_id=record_id,
        viewer=viewer,
        label=label,
        updated_at=_now(),
    )
    session.execute(
        stmt.on_conflict_do_update(
            index_elements=["scope_seq", "record_id", "viewer"],
            set_={"label": stmt.excluded.label, "updated_at": stmt.excluded.updated_at},
        )
    )


def _insert_for(session: Session, table: Any) -> Any:
    """Return the dialect ``insert`` that supports ``ON CONFLICT`` clauses."""
    if session.get_bind().dialect.name == "sqlite":
        return sqlite.insert(table)
    return postgresql.insert(table)


def _now() -> datetime:
    return datetime.now(UTC)


def _to_scope(row: Mapping[str, Any]) -> ScopeRecord:
    return ScopeRecord(
        seq=int(row["seq"]),
        kind=ScopeKind(str(row["kind"])),
        scope_id=str(row["scope_id"]),
        controller=None if row["controller"] is None else str(row["controller"]),
    )


def _to_record(row: Mapping[str, Any]) -> StoredRecord:
    """Map one SQL row to a strict domain record."""
    return StoredRecord(
        record_id=str(row["record_id"]),
        position=int(row["position"]),
        tombstone=None if row["tombstone"] is None else bool(row["tombstone"]),
        tags=list(row["tags"]),
        data=dict(row["data"]),
        created_at=_row_dt(row, "created_at"),
    )


def _row_dt(row: Mapping[str, Any], column: str) -> datetime:
    """Read and normalize one timezone-aware datetime field from SQL row."""
    value = row.get(column)
    if not isinstance(value, datetime):
        raise ValueError(f"expected datetime column for {column}")
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
