"""Structured log field names used across Herald components."""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"
EXCEPTION = "exception"

# Envelope correlation.
TRACE_ID = "trace_id"
ENVELOPE_ID = "envelope_id"
PARENT_ID = "parent_id"
SOURCE = "source"
PRINCIPAL = "principal"

# Public API instrumentation.
COMPONENT_ID = "component_id"
API_NAME = "api_name"
PUBLIC_API_INVOCATION_EVENT = "public_api_invocation"
PUBLIC_API_COMPLETION_EVENT = "public_api_completion"
PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT = "public_api_instrumentation_failure"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"
ERROR_CATEGORY = "error_category"
STAGE = "stage"
CONCERN = "concern"

# Index domain references.
SCOPE_KIND = "scope_kind"
SCOPE_ID = "scope_id"
RECORD_ID = "record_id"

SERVICE = "service"
ENVIRONMENT = "environment"
