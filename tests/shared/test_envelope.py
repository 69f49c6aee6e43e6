"""Tests for envelope model, builders and metadata validation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from packages.herald_shared.envelope import (
    EnvelopeKind,
    EnvelopeMeta,
    failure,
    new_meta,
    success,
    validate_meta,
)
from packages.herald_shared.errors import ErrorCategory, ErrorDetail, codes


def _meta(**overrides: object) -> EnvelopeMeta:
    """Return deterministic metadata for envelope tests."""
    values: dict[str, object] = {
        "kind": EnvelopeKind.QUERY,
        "source": "test",
        "principal": "user-1",
        "timestamp": datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC),
        "envelope_id": "env-1",
        "trace_id": "trace-1",
    }
    values.update(overrides)
    return new_meta(**values)  # type: ignore[arg-type]


def test_success_builder_returns_ok_envelope_with_payload() -> None:
    """success should build an ok envelope exposing its payload value."""
    envelope = success(meta=_meta(), payload={"record_id": "b1:sha256:00"})

    assert envelope.ok is True
    assert envelope.errors == []
    assert envelope.value == {"record_id": "b1:sha256:00"}


def test_failure_builder_carries_errors_and_no_payload() -> None:
    """failure should never carry a payload and should report not ok."""
    error = ErrorDetail(
        code=codes.DEPENDENCY_UNAVAILABLE,
        message="postgres unavailable",
        category=ErrorCategory.DEPENDENCY,
        retryable=True,
    )
    envelope = failure(meta=_meta(), errors=[error])

    assert envelope.ok is False
    assert envelope.payload is None
    assert envelope.errors == [error]
    with pytest.raises(ValueError, match="DEPENDENCY_UNAVAILABLE"):
        _ = envelope.value


def test_envelope_is_frozen() -> None:
    """Envelope instances should be immutable."""
    envelope = success(meta=_meta(), payload=1)

    with pytest.raises(ValidationError):
        envelope.errors = []  # type: ignore[misc]


def test_new_meta_normalizes_timestamps_to_utc() -> None:
    """Naive timestamps are treated as UTC and aware ones are converted."""
    naive = _meta(timestamp=datetime(2026, 1, 1, 12, 0, 0))
    aware = _meta(
        timestamp=datetime(2026, 1, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    )

    assert naive.timestamp.tzinfo == UTC
    assert aware.timestamp == datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


def test_new_meta_generates_ids_when_omitted() -> None:
    """Envelope and trace ids should be generated when not supplied."""
    meta = new_meta(kind=EnvelopeKind.COMMAND, source="test", principal="user-1")

    assert len(meta.envelope_id) == 32
    assert len(meta.trace_id) == 32
    assert meta.envelope_id != meta.trace_id


def test_validate_meta_accepts_complete_metadata() -> None:
    """Complete metadata should produce no validation errors."""
    assert validate_meta(_meta()) == []


def test_validate_meta_rejects_blank_principal() -> None:
    """An empty principal is reported as a missing metadata field."""
    errors = validate_meta(_meta(principal=""))

    assert [error.message for error in errors] == ["metadata.principal is required"]
    assert errors[0].category == ErrorCategory.VALIDATION
    assert errors[0].code == codes.INVALID_ARGUMENT


def test_validate_meta_rejects_unspecified_kind() -> None:
    """Unspecified envelope kinds are rejected."""
    errors = validate_meta(_meta(kind=EnvelopeKind.UNSPECIFIED))

    assert len(errors) == 1
    assert "metadata.kind must be specified" in errors[0].message
