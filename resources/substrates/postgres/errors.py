"""Map SQLAlchemy and psycopg exceptions onto shared error details."""

from __future__ import annotations

from sqlalchemy import exc as sa_exc

from packages.herald_shared.errors import (
    ErrorDetail,
    codes,
    conflict_error,
    dependency_error,
    internal_error,
)


def is_postgres_error(exc: Exception) -> bool:
    """Return whether ``exc`` was raised by the SQLAlchemy/psycopg stack."""
    module = type(exc).__module__
    return module.startswith(("sqlalchemy", "psycopg"))


def normalize_postgres_error(exc: Exception) -> ErrorDetail:
    """Classify one database exception.

    Integrity violations are conflicts. Connection loss, pool exhaustion and
    timeouts are retryable dependency failures. Malformed statements are
    non-retryable dependency failures. Anything else is internal.
    """
    metadata = {"exception_type": type(exc).__name__}
    message = str(exc)

    if isinstance(exc, sa_exc.IntegrityError) or "duplicate key value" in message:
        return conflict_error(
            "resource already exists", code=codes.ALREADY_EXISTS, metadata=metadata
        )

    if (
        isinstance(exc, (sa_exc.OperationalError, sa_exc.TimeoutError))
        or "timeout" in message.lower()
    ):
        return dependency_error(
            "postgres unavailable",
            code=codes.DEPENDENCY_UNAVAILABLE,
            metadata=metadata,
        )

    if isinstance(exc, (sa_exc.InterfaceError, sa_exc.ProgrammingError)):
        return dependency_error(
            "postgres request failed",
            code=codes.DEPENDENCY_FAILURE,
            retryable=False,
            metadata=metadata,
        )

    return internal_error(
        "unexpected postgres failure",
        code=codes.UNEXPECTED_EXCEPTION,
        metadata=metadata,
    )
