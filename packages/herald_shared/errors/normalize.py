"""Exception normalization utilities for shared error contracts."""

from __future__ import annotations

from . import codes
from .factories import (
    dependency_error,
    internal_error,
    not_found_error,
    policy_error,
    validation_error,
)
from .types import ErrorDetail


def exception_to_error(exc: Exception) -> ErrorDetail:
    """Normalize a Python exception into a shared ``ErrorDetail``.

    Services raise builtin exception subclasses internally (``ValueError`` for
    bad input, ``PermissionError`` for refused access, ``LookupError`` for
    absent resources) and rely on this mapping at the envelope boundary. An
    exception may carry a ``code`` attribute to refine the default code.
    """
    metadata = {"exception_type": type(exc).__name__}
    raw_code = getattr(exc, "code", None)
    code = raw_code if isinstance(raw_code, str) and raw_code else None

    if isinstance(exc, ValueError):
        return validation_error(
            str(exc), code=code or codes.INVALID_ARGUMENT, metadata=metadata
        )

    if isinstance(exc, LookupError):
        return not_found_error(
            _message(exc), code=code or codes.RESOURCE_NOT_FOUND, metadata=metadata
        )

    if isinstance(exc, PermissionError):
        return policy_error(
            str(exc), code=code or codes.PERMISSION_DENIED, metadata=metadata
        )

    if isinstance(exc, TimeoutError):
        return dependency_error(
            str(exc) or "dependency timeout",
            code=codes.DEPENDENCY_TIMEOUT,
            metadata=metadata,
        )

    if isinstance(exc, ConnectionError):
        return dependency_error(
            str(exc) or "dependency unavailable",
            code=codes.DEPENDENCY_UNAVAILABLE,
            metadata=metadata,
        )

    return internal_error(
        str(exc) or "unexpected exception",
        code=code or codes.UNEXPECTED_EXCEPTION,
        metadata=metadata,
    )


def _message(exc: Exception) -> str:
    """Return a readable message; ``KeyError`` reprs its argument otherwise."""
    if exc.args and isinstance(exc.args[0], str):
        return exc.args[0]
    return str(exc)
