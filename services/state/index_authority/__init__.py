"""Index Authority Service native package exports."""

from packages.herald_shared.envelope import Envelope, EnvelopeKind, EnvelopeMeta
from packages.herald_shared.errors import ErrorCategory, ErrorDetail
from services.state.index_authority.component import MANIFEST
from services.state.index_authority.config import IndexAuthoritySettings
from services.state.index_authority.domain import (
    ANONYMOUS_PRINCIPAL,
    PUBLIC_SCOPE_ID,
    CachePolicy,
    ExportPage,
    LabelAssignment,
    QueryPage,
    QueryResultItem,
    ScopeKind,
    StoredRecord,
    SubmitResult,
)
from services.state.index_authority.implementation import DefaultIndexAuthorityService
from services.state.index_authority.service import (
    IndexAuthorityService,
    build_index_authority_service,
)

__all__ = [
    "ANONYMOUS_PRINCIPAL",
    "MANIFEST",
    "PUBLIC_SCOPE_ID",
    "CachePolicy",
    "DefaultIndexAuthorityService",
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "ErrorCategory",
    "ErrorDetail",
    "ExportPage",
    "IndexAuthorityService",
    "IndexAuthoritySettings",
    "LabelAssignment",
    "QueryPage",
    "QueryResultItem",
    "ScopeKind",
    "StoredRecord",
    "SubmitResult",
    "build_index_authority_service",
]
