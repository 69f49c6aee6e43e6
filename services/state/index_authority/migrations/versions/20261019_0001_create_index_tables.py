"""create index authority tables and seed public scopes"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from services.state.index_authority.data.runtime import index_postgres_schema

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

_PUBLIC_SCOPES = (
    {"kind": "indexer", "scope_id": "public", "controller": None, "position": 0},
    {"kind": "inbox", "scope_id": "public", "controller": None, "position": 0},
)


def _schema() -> str:
    """Resolve canonical IAS-owned schema name."""
    return index_postgres_schema()


def upgrade() -> None:
    """Create IAS tables and the two public scopes."""
    schema = _schema()

    scopes = op.create_table(
        "scopes",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("scope_id", sa.String(length=128), nullable=False),
        sa.Column("controller", sa.String(length=256), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("kind", "scope_id", name="uq_scopes_kind_scope_id"),
        sa.CheckConstraint("kind IN ('indexer', 'inbox')", name="ck_scopes_kind"),
        sa.CheckConstraint("position >= 0", name="ck_scopes_position_nonnegative"),
        schema=schema,
    )

    op.create_table(
        "records",
        sa.Column("scope_seq", sa.Integer(), nullable=False),
        sa.Column("record_id", sa.String(length=160), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("tombstone", sa.Boolean(), nullable=True),
        sa.Column("tags", postgresql.JSONB(), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("scope_seq", "record_id", name="pk_records"),
        sa.UniqueConstraint("scope_seq", "position", name="uq_records_scope_position"),
        sa.ForeignKeyConstraint(
            ["scope_seq"],
            [f"{schema}.scopes.seq"],
            name="fk_records_scope",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint("position > 0", name="ck_records_position_positive"),
        schema=schema,
    )

    op.create_table(
        "record_tags",
        sa.Column("scope_seq", sa.Integer(), nullable=False),
        sa.Column("tag", sa.String(length=256), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("scope_seq", "tag", "position", name="pk_record_tags"),
        sa.ForeignKeyConstraint(
            ["scope_seq", "position"],
            [f"{schema}.records.scope_seq", f"{schema}.records.position"],
            name="fk_record_tags_record",
            ondelete="CASCADE",
        ),
        schema=schema,
    )

    op.create_table(
        "record_labels",
        sa.Column("scope_seq", sa.Integer(), nullable=False),
        sa.Column("record_id", sa.String(length=160), nullable=False),
        sa.Column("viewer", sa.String(length=256), nullable=False),
        sa.Column("label", sa.Integer(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint(
            "scope_seq", "record_id", "viewer", name="pk_record_labels"
        ),
        sa.ForeignKeyConstraint(
            ["scope_seq", "record_id"],
            [f"{schema}.records.scope_seq", f"{schema}.records.record_id"],
            name="fk_record_labels_record",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint("label >= 0", name="ck_record_labels_nonnegative"),
        schema=schema,
    )

    op.bulk_insert(scopes, list(_PUBLIC_SCOPES))


def downgrade() -> None:
    """Drop IAS tables."""
    schema = _schema()
    op.drop_table("record_labels", schema=schema)
    op.drop_table("record_tags", schema=schema)
    op.drop_table("records", schema=schema)
    op.drop_table("scopes", schema=schema)
