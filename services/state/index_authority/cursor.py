"""Opaque resumption cursors for query and export pagination.

Wire form is unpadded URL-safe base64 over compact JSON. Cursors come back
from clients, so decoding treats them as untrusted input and validates the
full structure before use. Query cursor tags pass the same limits as a fresh
query when the caller supplies the validation context.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    ValidationInfo,
    field_validator,
)

from services.state.index_authority.domain import MAX_STORED_INT
from services.state.index_authority.errors import CursorError
from services.state.index_authority.validation import validate_tags

TCursor = TypeVar("TCursor", bound="_Cursor")


class _Cursor(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    since_position: int = Field(alias="sincePosition", ge=0, le=MAX_STORED_INT)

    def encode(self) -> str:
        raw = json.dumps(
            self.model_dump(mode="json", by_alias=True),
            sort_keys=True,
            separators=(",", ":"),
        ).encode("utf-8")
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    @classmethod
    def decode(
        cls: type[TCursor],
        token: str,
        *,
        context: Mapping[str, Any] | None = None,
    ) -> TCursor:
        """Parse a token produced by ``encode``; raise ``CursorError`` otherwise."""
        try:
            raw = token.strip().encode("ascii")
            padded = raw + b"=" * (-len(raw) % 4)
            document = json.loads(base64.b64decode(padded, altchars=b"-_", validate=True))
            if not isinstance(document, dict):
                raise ValueError("cursor must encode a JSON object")
            return cls.model_validate(
                document, context=None if context is None else dict(context)
            )
        except ValueError as exc:
            raise CursorError("cursor is malformed") from exc


class QueryCursor(_Cursor):
    """Tag query resumption state."""

    tags: list[str] = Field(min_length=1)
    schema_filter: dict[str, JsonValue] | None = Field(
        default=None, alias="schemaFilter"
    )

    @field_validator("tags")
    @classmethod
    def _check_tags(cls, value: list[str], info: ValidationInfo) -> list[str]:
        return validate_tags(value, info)


class ExportCursor(_Cursor):
    """Full-dump resumption state."""
