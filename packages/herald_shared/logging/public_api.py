"""Instrumentation decorator for public service API methods.

Each decorated call emits an invocation event before running and a
completion event after, to every configured concern. Concern failures are
isolated and never change the outcome of the wrapped call.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from time import perf_counter
from typing import Any, Callable, Mapping, Protocol, Sequence

from . import fields
from .context import log_context


@dataclass(frozen=True)
class InvocationContext:
    """What is known about a call before it runs."""

    component_id: str
    api_name: str
    trace_id: str | None
    envelope_id: str | None
    principal: str | None
    references: Mapping[str, str]


@dataclass(frozen=True)
class CompletionContext:
    """Outcome of one finished call."""

    invocation: InvocationContext
    success: bool
    duration_ms: float
    errors: list[str]
    error_categories: list[str]


class PublicApiInstrumentationConcern(Protocol):
    """Hooks one instrumentation concern implements."""

    def on_invocation(self, context: InvocationContext) -> None:
        """Handle the start of a call."""

    def on_completion(self, context: CompletionContext) -> None:
        """Handle the end of a call."""


class PublicApiLoggingConcern:
    """Emit one structured log line per invocation and per completion."""

    def __init__(self, *, logger: Any) -> None:
        self._logger = logger

    def on_invocation(self, context: InvocationContext) -> None:
        with log_context(_invocation_fields(context)):
            self._logger.info("Public API invocation")

    def on_completion(self, context: CompletionContext) -> None:
        payload = _invocation_fields(context.invocation)
        payload.update(
            {
                fields.EVENT: fields.PUBLIC_API_COMPLETION_EVENT,
                fields.SUCCESS: context.success,
                fields.DURATION_MS: context.duration_ms,
                fields.ERRORS: context.errors,
            }
        )
        if context.error_categories:
            payload[fields.ERROR_CATEGORY] = ",".join(context.error_categories)
        with log_context(payload):
            if context.success:
                self._logger.info("Public API completion")
            else:
                self._logger.warning("Public API completion")


def public_api_instrumented(
    *,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
    concerns: Sequence[PublicApiInstrumentationConcern] | None = None,
    logger: Any | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Wrap a keyword-only service method with instrumentation concerns.

    ``meta`` is read from the call's keyword arguments for correlation ids.
    Keyword arguments named in ``id_fields`` are attached as references.
    """
    resolved: tuple[PublicApiInstrumentationConcern, ...] = tuple(concerns or ())
    if logger is not None:
        resolved = (PublicApiLoggingConcern(logger=logger), *resolved)
    if not resolved:
        raise ValueError("public_api_instrumented requires at least one concern")

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        method_name = api_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            meta = kwargs.get("meta")
            invocation = InvocationContext(
                component_id=component_id,
                api_name=method_name,
                trace_id=_attr_or_none(meta, "trace_id"),
                envelope_id=_attr_or_none(meta, "envelope_id"),
                principal=_attr_or_none(meta, "principal"),
                references={
                    name: str(_reference_value(kwargs[name]))
                    for name in id_fields
                    if kwargs.get(name) not in (None, "")
                },
            )
            _dispatch(resolved, "invocation", invocation, logger, invocation)

            started = perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                completion = CompletionContext(
                    invocation=invocation,
                    success=False,
                    duration_ms=_elapsed_ms(started),
                    errors=[f"{type(exc).__name__}: {exc}"],
                    error_categories=["internal"],
                )
                _dispatch(resolved, "completion", completion, logger, invocation)
                raise

            success, errors = _result_summary(result)
            completion = CompletionContext(
                invocation=invocation,
                success=success,
                duration_ms=_elapsed_ms(started),
                errors=errors,
                error_categories=_result_error_categories(result),
            )
            _dispatch(resolved, "completion", completion, logger, invocation)
            return result

        return wrapper

    return decorator


def _elapsed_ms(started: float) -> float:
    return round((perf_counter() - started) * 1000.0, 3)


def _reference_value(value: object) -> object:
    """Unwrap enum members so references log their plain value."""
    return getattr(value, "value", value)


def _attr_or_none(obj: object | None, name: str) -> str | None:
    if obj is None:
        return None
    value = getattr(obj, name, None)
    if value in (None, ""):
        return None
    return str(value)


def _result_summary(result: object) -> tuple[bool, list[str]]:
    """Infer success and one-line error summaries from an envelope-like result."""
    errors = _sanitize_errors(getattr(result, "errors", []))
    ok_value = getattr(result, "ok", None)
    if isinstance(ok_value, bool):
        return ok_value, errors
    return not errors, errors


def _result_error_categories(result: object) -> list[str]:
    errors_obj = getattr(result, "errors", [])
    if not isinstance(errors_obj, list):
        return []
    categories: list[str] = []
    for item in errors_obj:
        raw = getattr(item, "category", None)
        category = getattr(raw, "value", raw)
        if category not in (None, ""):
            categories.append(str(category))
    return categories


def _sanitize_errors(errors: object) -> list[str]:
    if not isinstance(errors, list):
        return []
    summaries: list[str] = []
    for item in errors:
        code = getattr(item, "code", None)
        message = getattr(item, "message", None)
        if message in (None, ""):
            continue
        summaries.append(str(message) if code in (None, "") else f"{code}: {message}")
    return summaries


def _invocation_fields(context: InvocationContext) -> dict[str, object]:
    return {
        fields.EVENT: fields.PUBLIC_API_INVOCATION_EVENT,
        fields.COMPONENT_ID: context.component_id,
        fields.API_NAME: context.api_name,
        fields.TRACE_ID: context.trace_id,
        fields.ENVELOPE_ID: context.envelope_id,
        fields.PRINCIPAL: context.principal,
        **context.references,
    }


def _dispatch(
    concerns: Sequence[PublicApiInstrumentationConcern],
    stage: str,
    context: InvocationContext | CompletionContext,
    logger: Any | None,
    invocation: InvocationContext,
) -> None:
    """Deliver one event to every concern, logging hook failures."""
    for concern in concerns:
        try:
            if stage == "invocation":
                concern.on_invocation(context)  # type: ignore[arg-type]
            else:
                concern.on_completion(context)  # type: ignore[arg-type]
        except Exception as exc:  # noqa: BLE001
            if logger is None:
                continue
            with log_context(
                {
                    fields.EVENT: fields.PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT,
                    fields.COMPONENT_ID: invocation.component_id,
                    fields.API_NAME: invocation.api_name,
                    fields.STAGE: stage,
                    fields.CONCERN: type(concern).__name__,
                    fields.ERRORS: [f"{type(exc).__name__}: {exc}"],
                }
            ):
                logger.warning("Public API instrumentation concern failed")
