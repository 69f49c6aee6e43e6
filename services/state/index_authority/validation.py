"""Pydantic request-validation models for Index Authority Service API.

Tag limits come from service settings and reach validators through the
pydantic validation context (``max_tags`` and ``max_tag_length`` keys).
"""

from __future__ import annotations

import re

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    ValidationInfo,
    field_validator,
    model_validator,
)

from services.state.index_authority.domain import MAX_STORED_INT, ScopeKind
from services.state.index_authority.scopes import policy_for

_RECORD_ID_RE = re.compile(
    r"^(?P<version>[a-z0-9]+):(?P<algorithm>[a-z0-9_]+):(?P<digest>[0-9a-f]{64})$"
)


class _ValidationModel(BaseModel):
    """Base request model with strict shape semantics."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class _ScopedRequest(_ValidationModel):
    kind: ScopeKind
    scope_id: str

    @field_validator("scope_id")
    @classmethod
    def _validate_scope_id(cls, value: str) -> str:
        normalized = value.strip()
        if normalized == "":
            raise ValueError("scope_id is required")
        return normalized


def validate_tags(value: list[str], info: ValidationInfo) -> list[str]:
    """Require unique non-empty tags within the configured bounds."""
    context = info.context or {}
    max_tags = context.get("max_tags")
    max_tag_length = context.get("max_tag_length")
    if len(set(value)) != len(value):
        raise ValueError("tags must be unique")
    if max_tags is not None and len(value) > max_tags:
        raise ValueError(f"at most {max_tags} tags are allowed")
    for tag in value:
        if tag == "":
            raise ValueError("tags must be non-empty strings")
        if max_tag_length is not None and len(tag) > max_tag_length:
            raise ValueError(f"tags must be at most {max_tag_length} characters")
    return value


class SubmitRequest(_ScopedRequest):
    """Validated submit request shape."""

    tags: list[str]
    data: dict[str, JsonValue]
    tombstone: bool | None = None

    @field_validator("tags")
    @classmethod
    def _check_tags(cls, value: list[str], info: ValidationInfo) -> list[str]:
        return validate_tags(value, info)

    @model_validator(mode="after")
    def _validate_tombstone(self) -> "SubmitRequest":
        """Indexer records carry a tombstone flag; inbox records never do."""
        accepts = policy_for(self.kind).accepts_tombstone
        if accepts and self.tombstone is None:
            raise ValueError(f"tombstone is required for {self.kind.value} records")
        if not accepts and self.tombstone is not None:
            raise ValueError(f"tombstone is not allowed for {self.kind.value} records")
        return self


class QueryRequest(_ScopedRequest):
    """Validated query request: either a cursor or a fresh tag set."""

    tags: list[str] | None = None
    schema_filter: dict[str, JsonValue] | None = None
    cursor: str | None = None

    @field_validator("tags")
    @classmethod
    def _check_tags(cls, value: list[str] | None, info: ValidationInfo) -> list[str] | None:
        if value is None:
            return None
        if not value:
            raise ValueError("tags must contain at least one tag")
        return validate_tags(value, info)

    @model_validator(mode="after")
    def _require_one_source(self) -> "QueryRequest":
        if self.cursor is not None:
            if self.tags is not None or self.schema_filter is not None:
                raise ValueError("cursor cannot be combined with tags or schema_filter")
            return self
        if self.tags is None:
            raise ValueError("either cursor or tags is required")
        return self


class LabelRequest(_ScopedRequest):
    """Validated label request shape."""

    record_id: str
    label: int = Field(ge=0, le=MAX_STORED_INT)

    @field_validator("record_id")
    @classmethod
    def _validate_record_id(cls, value: str, info: ValidationInfo) -> str:
        """Validate canonical record key shape and normalize to lowercase."""
        normalized = value.strip().lower()
        if _RECORD_ID_RE.match(normalized) is None:
            raise ValueError(
                f"{info.field_name} must match '<version>:<algorithm>:<64hex>'"
            )
        return normalized


class ExportRequest(_ScopedRequest):
    """Validated export request shape."""

    cursor: str | None = None
