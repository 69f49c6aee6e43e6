"""Tests for Index Authority request validation models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from services.state.index_authority.domain import ScopeKind
from services.state.index_authority.validation import (
    LabelRequest,
    QueryRequest,
    SubmitRequest,
)

_CONTEXT = {"max_tags": 3, "max_tag_length": 8}
_RECORD_ID = "b1:sha256:" + "a" * 64


def _submit(**overrides: object) -> SubmitRequest:
    payload: dict[str, object] = {
        "kind": ScopeKind.INDEXER,
        "scope_id": "public",
        "tags": ["h1"],
        "data": {"n": 1},
        "tombstone": False,
    }
    payload.update(overrides)
    return SubmitRequest.model_validate(payload, context=_CONTEXT)


def test_submit_requires_tombstone_for_indexers_only() -> None:
    """Indexer records carry a tombstone; inbox records must not."""
    assert _submit().tombstone is False
    assert _submit(kind=ScopeKind.INBOX, tombstone=None).tombstone is None
    with pytest.raises(ValidationError, match="tombstone is required"):
        _submit(tombstone=None)
    with pytest.raises(ValidationError, match="tombstone is not allowed"):
        _submit(kind=ScopeKind.INBOX, tombstone=True)


@pytest.mark.parametrize(
    ("tags", "message"),
    [
        (["a", "a"], "unique"),
        (["a", "b", "c", "d"], "at most 3 tags"),
        ([""], "non-empty"),
        (["abcdefghi"], "at most 8 characters"),
    ],
)
def test_submit_enforces_tag_limits_from_context(tags: list[str], message: str) -> None:
    """Tag uniqueness and configured limits are enforced."""
    with pytest.raises(ValidationError, match=message):
        _submit(tags=tags)


def test_submit_strips_scope_id_and_rejects_blank() -> None:
    """Scope ids are trimmed and required."""
    assert _submit(scope_id="  public ").scope_id == "public"
    with pytest.raises(ValidationError, match="scope_id is required"):
        _submit(scope_id="   ")


def test_submit_rejects_non_json_data() -> None:
    """Record data must be a JSON object."""
    with pytest.raises(ValidationError):
        _submit(data={"when": object()})


def test_query_accepts_either_cursor_or_tags() -> None:
    """A query resumes from a cursor or starts from a tag set."""
    by_tags = QueryRequest.model_validate(
        {"kind": "indexer", "scope_id": "public", "tags": ["h1"]}, context=_CONTEXT
    )
    by_cursor = QueryRequest.model_validate(
        {"kind": "indexer", "scope_id": "public", "cursor": "abc"}, context=_CONTEXT
    )

    assert by_tags.cursor is None
    assert by_cursor.tags is None


@pytest.mark.parametrize(
    ("extra", "message"),
    [
        ({}, "either cursor or tags is required"),
        ({"tags": []}, "at least one tag"),
        ({"cursor": "abc", "tags": ["h1"]}, "cannot be combined"),
        ({"cursor": "abc", "schema_filter": {"type": "object"}}, "cannot be combined"),
    ],
)
def test_query_rejects_ambiguous_or_empty_requests(
    extra: dict[str, object], message: str
) -> None:
    """Cursor and fresh query parameters are mutually exclusive."""
    payload = {"kind": "indexer", "scope_id": "public", **extra}
    with pytest.raises(ValidationError, match=message):
        QueryRequest.model_validate(payload, context=_CONTEXT)


def test_label_normalizes_record_id_and_requires_non_negative_label() -> None:
    """Record ids are lowercased and must match the key format."""
    request = LabelRequest.model_validate(
        {
            "kind": "indexer",
            "scope_id": "public",
            "record_id": _RECORD_ID.upper(),
            "label": 2,
        }
    )

    assert request.record_id == _RECORD_ID
    with pytest.raises(ValidationError):
        LabelRequest.model_validate(
            {"kind": "indexer", "scope_id": "public", "record_id": "nope", "label": 1}
        )
    with pytest.raises(ValidationError):
        LabelRequest.model_validate(
            {"kind": "indexer", "scope_id": "public", "record_id": _RECORD_ID, "label": -1}
        )


@pytest.mark.parametrize("label", [2**31, 2**64])
def test_label_values_must_fit_the_label_column(label: int) -> None:
    """Labels past the 32-bit column range are rejected up front."""
    payload = {"kind": "indexer", "scope_id": "public", "record_id": _RECORD_ID}

    assert LabelRequest.model_validate({**payload, "label": 2**31 - 1}).label == 2**31 - 1
    with pytest.raises(ValidationError, match="less than or equal"):
        LabelRequest.model_validate({**payload, "label": label})
