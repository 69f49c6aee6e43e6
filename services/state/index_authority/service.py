"""Authoritative in-process Python API for Index Authority Service."""

from __future__ import annotations

from abc import ABC, abstractmethod

from packages.herald_shared.config import HeraldSettings
from packages.herald_shared.envelope import Envelope, EnvelopeMeta
from services.state.index_authority.domain import (
    ExportPage,
    HealthStatus,
    LabelAssignment,
    QueryPage,
    ScopeKind,
    SubmitResult,
)
from services.state.index_authority.interfaces import IndexRepository, RecordDataFilter


class IndexAuthorityService(ABC):
    """Public API for content-addressed record indexing and querying.

    Callers pass the already-authenticated principal in ``meta.principal``
    (``"anonymous"`` for unauthenticated callers).
    """

    @abstractmethod
    def submit(
        self,
        *,
        meta: EnvelopeMeta,
        kind: ScopeKind,
        scope_id: str,
        tags: list[str],
        data: dict[str, object],
        tombstone: bool | None = None,
    ) -> Envelope[SubmitResult]:
        """Index one record; resubmitting identical content is a no-op."""

    @abstractmethod
    def query(
        self,
        *,
        meta: EnvelopeMeta,
        kind: ScopeKind,
        scope_id: str,
        tags: list[str] | None = None,
        schema_filter: dict[str, object] | None = None,
        cursor: str | None = None,
    ) -> Envelope[QueryPage]:
        """Return one page of tag matches visible to the principal."""

    @abstractmethod
    def label(
        self,
        *,
        meta: EnvelopeMeta,
        kind: ScopeKind,
        scope_id: str,
        record_id: str,
        label: int,
    ) -> Envelope[LabelAssignment]:
        """Set the principal's moderation label on one record."""

    @abstractmethod
    def export(
        self,
        *,
        meta: EnvelopeMeta,
        kind: ScopeKind,
        scope_id: str,
        cursor: str | None = None,
    ) -> Envelope[ExportPage]:
        """Return one page of every record in a controlled scope."""

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return IAS and owned dependency readiness status."""


def build_index_authority_service(
    *,
    settings: HeraldSettings,
    repository: IndexRepository | None = None,
    data_filter: RecordDataFilter | None = None,
) -> IndexAuthorityService:
    """Build default Index Authority implementation from typed settings."""
    from services.state.index_authority.config import resolve_index_authority_settings
    from services.state.index_authority.data import (
        IndexPostgresRuntime,
        PostgresIndexRepository,
    )
    from services.state.index_authority.filtering import JsonSchemaDataFilter
    from services.state.index_authority.implementation import (
        DefaultIndexAuthorityService,
    )

    service_settings = resolve_index_authority_settings(settings)
    substrate_probe = None
    if repository is None:
        runtime = IndexPostgresRuntime.from_settings(settings)
        repository = PostgresIndexRepository(runtime.schema_sessions)
        substrate_probe = runtime.is_healthy
    return DefaultIndexAuthorityService(
        settings=service_settings,
        repository=repository,
        data_filter=data_filter
        or JsonSchemaDataFilter(capacity=service_settings.schema_cache_capacity),
        substrate_probe=substrate_probe,
    )
