"""Domain contracts for Index Authority Service payloads."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, JsonValue

PUBLIC_SCOPE_ID = "public"
ANONYMOUS_PRINCIPAL = "anonymous"

LABEL_NEUTRAL = 0
LABEL_ACCEPTED = 1

# Positions and labels are stored in 32-bit integer columns.
MAX_STORED_INT = 2**31 - 1


class ScopeKind(str, Enum):
    """Kinds of record container."""

    INDEXER = "indexer"
    INBOX = "inbox"


class CachePolicy(str, Enum):
    """Caching hint for the transport layer.

    ``IMMUTABLE`` pages have a successor page, so later inserts can never
    change them. ``REVALIDATE`` pages are the current tail.
    """

    IMMUTABLE = "immutable"
    REVALIDATE = "revalidate"


class ScopeRecord(BaseModel):
    """Resolved scope identity and ownership."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    seq: int
    kind: ScopeKind
    scope_id: str
    controller: str | None

    @property
    def is_public(self) -> bool:
        return self.controller is None


class StoredRecord(BaseModel):
    """One immutable record as persisted in a scope."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    record_id: str
    position: int
    tombstone: bool | None
    tags: list[str]
    data: dict[str, JsonValue]
    created_at: datetime


class SubmitResult(BaseModel):
    """Outcome of one submit; ``created`` is false for duplicates."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    record_id: str
    position: int
    created: bool


class QueryResultItem(BaseModel):
    """One query hit with the viewer's label (``0`` when absent)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    record: StoredRecord
    label: int


class QueryPage(BaseModel):
    """One page of query results plus the cursor for the next call."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    results: list[QueryResultItem]
    has_more: bool
    last_position: int
    cursor: str
    cache_policy: CachePolicy


class ExportPage(BaseModel):
    """One page of a full scope dump."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    records: list[StoredRecord]
    has_more: bool
    last_position: int
    cursor: str
    cache_policy: CachePolicy


class LabelAssignment(BaseModel):
    """Label now in effect for one ``(record, viewer)`` pair."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    record_id: str
    viewer: str
    label: int


class HealthStatus(BaseModel):
    """IAS and owned dependency readiness status payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    substrate_ready: bool
    detail: str


class LabeledRecord(BaseModel):
    """Repository query row: a record and the viewer's label for it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    record: StoredRecord
    label: int
