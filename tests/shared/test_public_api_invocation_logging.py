"""Runtime tests for the public API instrumentation decorator."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from enum import Enum

import pytest

from packages.herald_shared.envelope import (
    EnvelopeKind,
    EnvelopeMeta,
    failure,
    new_meta,
    success,
)
from packages.herald_shared.errors import validation_error
from packages.herald_shared.logging import (
    CompletionContext,
    InvocationContext,
    bind_context,
    clear_context,
    get_context,
    log_context,
    public_api_instrumented,
)
from packages.herald_shared.logging.config import ContextFilter, JsonFormatter


class _Color(str, Enum):
    RED = "red"


class _CapturingLogger:
    """Record each log call with the logging context active at that moment."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, str]]] = []

    def info(self, message: str) -> None:
        self.records.append(("info", message, get_context()))

    def warning(self, message: str) -> None:
        self.records.append(("warning", message, get_context()))


class _RecordingConcern:
    def __init__(self) -> None:
        self.invocations: list[InvocationContext] = []
        self.completions: list[CompletionContext] = []

    def on_invocation(self, context: InvocationContext) -> None:
        self.invocations.append(context)

    def on_completion(self, context: CompletionContext) -> None:
        self.completions.append(context)


class _ExplodingConcern:
    def on_invocation(self, context: InvocationContext) -> None:
        raise RuntimeError("hook down")

    def on_completion(self, context: CompletionContext) -> None:
        raise RuntimeError("hook down")


def _meta() -> EnvelopeMeta:
    return new_meta(
        kind=EnvelopeKind.COMMAND,
        source="test",
        principal="user-1",
        envelope_id="env-1",
        trace_id="trace-1",
        timestamp=datetime(2026, 1, 1, tzinfo=UTC),
    )


def test_logging_concern_emits_invocation_and_completion() -> None:
    """A successful call logs one invocation and one info completion."""
    logger = _CapturingLogger()

    @public_api_instrumented(
        component_id="service_test", logger=logger, id_fields=("scope_id", "color")
    )
    def submit(*, meta: EnvelopeMeta, scope_id: str, color: _Color) -> object:
        return success(meta=meta, payload="ok")

    submit(meta=_meta(), scope_id="public", color=_Color.RED)

    assert [(level, message) for level, message, _ in logger.records] == [
        ("info", "Public API invocation"),
        ("info", "Public API completion"),
    ]
    invocation = logger.records[0][2]
    assert invocation["event"] == "public_api_invocation"
    assert invocation["api_name"] == "submit"
    assert invocation["trace_id"] == "trace-1"
    assert invocation["principal"] == "user-1"
    assert invocation["scope_id"] == "public"
    assert invocation["color"] == "red"
    completion = logger.records[1][2]
    assert completion["event"] == "public_api_completion"
    assert completion["success"] == "True"


def test_failed_envelope_completion_logs_warning_with_categories() -> None:
    """Failure envelopes are reported with their codes and categories."""
    logger = _CapturingLogger()

    @public_api_instrumented(component_id="service_test", logger=logger)
    def query(*, meta: EnvelopeMeta) -> object:
        return failure(meta=meta, errors=[validation_error("bad tags", code="BAD")])

    query(meta=_meta())

    level, _, context = logger.records[-1]
    assert level == "warning"
    assert context["success"] == "False"
    assert context["error_category"] == "validation"
    assert "BAD: bad tags" in context["errors"]


def test_raised_exceptions_are_reported_and_propagated() -> None:
    """Exceptions surface to the caller after a failed completion event."""
    concern = _RecordingConcern()

    @public_api_instrumented(component_id="service_test", concerns=(concern,))
    def export(*, meta: EnvelopeMeta) -> object:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        export(meta=_meta())

    assert len(concern.invocations) == 1
    assert concern.completions[0].success is False
    assert concern.completions[0].errors == ["RuntimeError: boom"]


def test_concern_failures_do_not_change_call_outcome() -> None:
    """A broken concern is logged and the wrapped result is still returned."""
    logger = _CapturingLogger()

    @public_api_instrumented(
        component_id="service_test", logger=logger, concerns=(_ExplodingConcern(),)
    )
    def health(*, meta: EnvelopeMeta) -> object:
        return success(meta=meta, payload=True)

    result = health(meta=_meta())

    assert result.value is True
    failures = [
        context
        for _, _, context in logger.records
        if context.get("event") == "public_api_instrumentation_failure"
    ]
    assert [context["stage"] for context in failures] == ["invocation", "completion"]


def test_decorator_requires_a_concern() -> None:
    """Without a logger or concerns there is nothing to instrument."""
    with pytest.raises(ValueError):
        public_api_instrumented(component_id="service_test")


def test_log_context_restores_previous_values() -> None:
    """Scoped context is removed again when the block exits."""
    clear_context()
    bind_context(service="herald", ignored=None)
    with log_context({"scope_id": "public"}):
        assert get_context() == {"service": "herald", "scope_id": "public"}
    assert get_context() == {"service": "herald"}
    clear_context("service")
    assert get_context() == {}


def test_json_formatter_includes_context_fields() -> None:
    """The JSON formatter merges the bound context into each line."""
    record = logging.LogRecord(
        name="herald.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello %s",
        args=("world",),
        exc_info=None,
    )
    with log_context({"record_id": "b1:sha256:00"}):
        ContextFilter().filter(record)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "hello world"
    assert payload["level"] == "INFO"
    assert payload["record_id"] == "b1:sha256:00"
