"""SQLAlchemy table definitions owned by Index Authority Service.

Tables are unqualified; the session provider pins ``search_path`` to the
service schema.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKeyConstraint,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB

metadata = MetaData()

_JSON = JSON().with_variant(JSONB(), "postgresql")

scopes = Table(
    "scopes",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("kind", String(16), nullable=False),
    Column("scope_id", String(128), nullable=False),
    Column("controller", String(256), nullable=True),
    Column("position", Integer, nullable=False, server_default="0"),
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    ),
    UniqueConstraint("kind", "scope_id", name="uq_scopes_kind_scope_id"),
    CheckConstraint("kind IN ('indexer', 'inbox')", name="ck_scopes_kind"),
    CheckConstraint("position >= 0", name="ck_scopes_position_nonnegative"),
)

records = Table(
    "records",
    metadata,
    Column("scope_seq", Integer, nullable=False),
    Column("record_id", String(160), nullable=False),
    Column("position", Integer, nullable=False),
    Column("tombstone", Boolean, nullable=True),
    Column("tags", _JSON, nullable=False),
    Column("data", _JSON, nullable=False),
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    ),
    PrimaryKeyConstraint("scope_seq", "record_id", name="pk_records"),
    UniqueConstraint("scope_seq", "position", name="uq_records_scope_position"),
    ForeignKeyConstraint(
        ["scope_seq"], ["scopes.seq"], name="fk_records_scope", ondelete="CASCADE"
    ),
    CheckConstraint("position > 0", name="ck_records_position_positive"),
)

record_tags = Table(
    "record_tags",
    metadata,
    Column("scope_seq", Integer, nullable=False),
    Column("tag", String(256), nullable=False),
    Column("position", Integer, nullable=False),
    PrimaryKeyConstraint("scope_seq", "tag", "position", name="pk_record_tags"),
    ForeignKeyConstraint(
        ["scope_seq", "position"],
        ["records.scope_seq", "records.position"],
        name="fk_record_tags_record",
        ondelete="CASCADE",
    ),
)

record_labels = Table(
    "record_labels",
    metadata,
    Column("scope_seq", Integer, nullable=False),
    Column("record_id", String(160), nullable=False),
    Column("viewer", String(256), nullable=False),
    Column("label", Integer, nullable=False),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    ),
    PrimaryKeyConstraint("scope_seq", "record_id", "viewer", name="pk_record_labels"),
    ForeignKeyConstraint(
        ["scope_seq", "record_id"],
        ["records.scope_seq", "records.record_id"],
        name="fk_record_labels_record",
        ondelete="CASCADE",
    ),
    CheckConstraint("label >= 0", name="ck_record_labels_nonnegative"),
)
