"""Index Authority error codes and internal exception types.

Exceptions subclass the builtin that ``exception_to_error`` maps onto the
right shared category, and carry the narrower IAS code in ``code``.
"""

from __future__ import annotations

SCOPE_NOT_FOUND = "SCOPE_NOT_FOUND"
RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
INVALID_CURSOR = "INVALID_CURSOR"
INVALID_SCHEMA_FILTER = "INVALID_SCHEMA_FILTER"
RECORD_CONSISTENCY_VIOLATION = "RECORD_CONSISTENCY_VIOLATION"


class IndexAuthorityError(Exception):
    """Base for failures IAS reports as envelope errors."""

    code: str | None = None


class ScopeNotFoundError(IndexAuthorityError, LookupError):
    code = SCOPE_NOT_FOUND


class RecordNotFoundError(IndexAuthorityError, LookupError):
    code = RECORD_NOT_FOUND


class ScopeAccessDenied(IndexAuthorityError, PermissionError):
    """The principal may not perform the operation in this scope."""


class CursorError(IndexAuthorityError, ValueError):
    """A resumption cursor failed to decode or validate."""

    code = INVALID_CURSOR


class SchemaFilterError(IndexAuthorityError, ValueError):
    code = INVALID_SCHEMA_FILTER


class RecordConsistencyError(IndexAuthorityError, RuntimeError):
    """A conditional insert was a no-op but the existing row is missing."""

    code = RECORD_CONSISTENCY_VIOLATION
