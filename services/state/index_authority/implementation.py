"""Concrete Index Authority Service implementation."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from packages.herald_shared.config import HeraldSettings
from packages.herald_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    failure,
    success,
    validate_meta,
)
from packages.herald_shared.errors import (
    ErrorDetail,
    codes,
    dependency_error,
    exception_to_error,
    validation_error,
)
from packages.herald_shared.logging import get_logger, public_api_instrumented
from resources.substrates.postgres.errors import (
    is_postgres_error,
    normalize_postgres_error,
)
from services.state.index_authority.addressing import ContentAddresser
from services.state.index_authority.authorization import AuthorizationGuard, viewer_for
from services.state.index_authority.component import SERVICE_COMPONENT_ID
from services.state.index_authority.config import (
    IndexAuthoritySettings,
    resolve_index_authority_settings,
)
from services.state.index_authority.cursor import ExportCursor, QueryCursor
from services.state.index_authority.data import (
    IndexPostgresRuntime,
    PostgresIndexRepository,
)
from services.state.index_authority.domain import (
    PUBLIC_SCOPE_ID,
    CachePolicy,
    ExportPage,
    HealthStatus,
    LabelAssignment,
    QueryPage,
    QueryResultItem,
    ScopeKind,
    SubmitResult,
)
from services.state.index_authority.errors import (
    IndexAuthorityError,
    RecordConsistencyError,
    RecordNotFoundError,
)
from services.state.index_authority.filtering import JsonSchemaDataFilter
from services.state.index_authority.interfaces import IndexRepository, RecordDataFilter
from services.state.index_authority.scopes import ScopeRegistry, policy_for
from services.state.index_authority.service import IndexAuthorityService
from services.state.index_authority.validation import (
    ExportRequest,
    LabelRequest,
    QueryRequest,
    SubmitRequest,
)

_LOGGER = get_logger(__name__)

TRequest = TypeVar("TRequest", bound=BaseModel)


class DefaultIndexAuthorityService(IndexAuthorityService):
    """Default IAS implementation backed by the Postgres index repository."""

    def __init__(
        self,
        *,
        settings: IndexAuthoritySettings,
        repository: IndexRepository,
        data_filter: RecordDataFilter,
        guard: AuthorizationGuard | None = None,
        substrate_probe: Callable[[], bool] | None = None,
    ) -> None:
        self._settings = settings
        self._repository = repository
        self._data_filter = data_filter
        self._guard = guard or AuthorizationGuard()
        self._substrate_probe = substrate_probe
        self._scopes = ScopeRegistry(
            repository=repository, capacity=settings.scope_cache_capacity
        )
        self._addresser = ContentAddresser(settings)

    @classmethod
    def from_settings(cls, settings: HeraldSettings) -> "DefaultIndexAuthorityService":
        """Build IAS from typed settings and owned resources."""
        service_settings = resolve_index_authority_settings(settings)
        runtime = IndexPostgresRuntime.from_settings(settings)
        return cls(
            settings=service_settings,
            repository=PostgresIndexRepository(runtime.schema_sessions),
            data_filter=JsonSchemaDataFilter(
                capacity=service_settings.schema_cache_capacity
            ),
            substrate_probe=runtime.is_healthy,
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
    )
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Report readiness; Postgres must answer and the public scopes exist."""
        errors = validate_meta(meta)
        if errors:
            return failure(meta=meta, errors=errors)
        substrate_ready = self._substrate_probe is None or self._substrate_probe()
        if not substrate_ready:
            return success(
                meta=meta,
                payload=HealthStatus(
                    service_ready=False,
                    substrate_ready=False,
                    detail="postgres ping failed",
                ),
            )
        try:
            public = self._repository.get_scope(
                kind=ScopeKind.INDEXER, scope_id=PUBLIC_SCOPE_ID
            )
        except Exception as exc:  # noqa: BLE001
            return self._failure(meta=meta, operation="health", exc=exc)
        ready = public is not None
        return success(
            meta=meta,
            payload=HealthStatus(
                service_ready=ready,
                substrate_ready=True,
                detail="ok" if ready else "public scopes are not provisioned",
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("kind", "scope_id"),
    )
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
        """Index one record, deduplicating by content address."""
        request, errors = self._validate_request(
            meta=meta,
            model=SubmitRequest,
            payload={
                "kind": kind,
                "scope_id": scope_id,
                "tags": tags,
                "data": data,
                "tombstone": tombstone,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        try:
            scope = self._scopes.resolve(kind=request.kind, scope_id=request.scope_id)
            address = self._addresser.address(
                scope=scope,
                tags=request.tags,
                data=request.data,
                tombstone=request.tombstone,
            )
            record, created = self._repository.insert_record(
                scope_seq=scope.seq,
                record_id=address.record_id,
                tags=request.tags,
                data=request.data,
                tombstone=request.tombstone,
                auto_label_viewer=policy_for(scope.kind).auto_label_viewer(
                    scope=scope, principal=meta.principal
                ),
            )
        except Exception as exc:  # noqa: BLE001
            return self._failure(meta=meta, operation="submit", exc=exc)

        return success(
            meta=meta,
            payload=SubmitResult(
                record_id=record.record_id, position=record.position, created=created
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("kind", "scope_id"),
    )
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
        """Return one page of tag matches after the cursor position.

        One extra row is fetched to decide ``has_more``. The schema filter is
        applied afterwards so it never shifts page boundaries.
        """
        request, errors = self._validate_request(
            meta=meta,
            model=QueryRequest,
            payload={
                "kind": kind,
                "scope_id": scope_id,
                "tags": tags,
                "schema_filter": schema_filter,
                "cursor": cursor,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        limit = self._settings.query_page_limit
        try:
            scope = self._scopes.resolve(kind=request.kind, scope_id=request.scope_id)
            self._guard.authorize_query(scope=scope, principal=meta.principal)
            if request.cursor is not None:
                position = QueryCursor.decode(
                    request.cursor, context=self._validation_context()
                )
            else:
                position = QueryCursor(
                    since_position=0,
                    tags=request.tags,
                    schema_filter=request.schema_filter,
                )
            matches = (
                None
                if position.schema_filter is None
                else self._data_filter.compile(position.schema_filter)
            )
            rows = self._repository.query_records(
                scope_seq=scope.seq,
                tags=position.tags,
                after=position.since_position,
                viewer=viewer_for(meta.principal),
                limit=limit + 1,
            )
        except Exception as exc:  # noqa: BLE001
            return self._failure(meta=meta, operation="query", exc=exc)

        has_more = len(rows) > limit
        rows = rows[:limit]
        last_position = rows[-1].record.position if rows else position.since_position
        next_cursor = QueryCursor(
            since_position=last_position,
            tags=position.tags,
            schema_filter=position.schema_filter,
        )
        return success(
            meta=meta,
            payload=QueryPage(
                results=[
                    QueryResultItem(
                        id=row.record.record_id, record=row.record, label=row.label
                    )
                    for row in rows
                    if matches is None or matches(row.record.data)
                ],
                has_more=has_more,
                last_position=last_position,
                cursor=next_cursor.encode(),
                cache_policy=_cache_policy(has_more),
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("kind", "scope_id", "record_id"),
    )
    def label(
        self,
        *,
        meta: EnvelopeMeta,
        kind: ScopeKind,
        scope_id: str,
        record_id: str,
        label: int,
    ) -> Envelope[LabelAssignment]:
        """Upsert the principal's label on one record in the scope."""
        request, errors = self._validate_request(
            meta=meta,
            model=LabelRequest,
            payload={
                "kind": kind,
                "scope_id": scope_id,
                "record_id": record_id,
                "label": label,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        try:
            scope = self._scopes.resolve(kind=request.kind, scope_id=request.scope_id)
            self._guard.authorize_label(scope=scope, principal=meta.principal)
            found = self._repository.set_label(
                scope_seq=scope.seq,
                record_id=request.record_id,
                viewer=meta.principal,
                label=request.label,
            )
            if not found:
                raise RecordNotFoundError(f"record not found: {request.record_id}")
        except Exception as exc:  # noqa: BLE001
            return self._failure(meta=meta, operation="label", exc=exc)

        return success(
            meta=meta,
            payload=LabelAssignment(
                record_id=request.record_id, viewer=meta.principal, label=request.label
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("kind", "scope_id"),
    )
    def export(
        self,
        *,
        meta: EnvelopeMeta,
        kind: ScopeKind,
        scope_id: str,
        cursor: str | None = None,
    ) -> Envelope[ExportPage]:
        """Return one page of the full record dump for the scope controller."""
        request, errors = self._validate_request(
            meta=meta,
            model=ExportRequest,
            payload={"kind": kind, "scope_id": scope_id, "cursor": cursor},
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        limit = self._settings.export_page_limit
        try:
            scope = self._scopes.resolve(kind=request.kind, scope_id=request.scope_id)
            self._guard.authorize_export(scope=scope, principal=meta.principal)
            position = (
                ExportCursor(since_position=0)
                if request.cursor is None
                else ExportCursor.decode(request.cursor)
            )
            records = self._repository.export_records(
                scope_seq=scope.seq, after=position.since_position, limit=limit + 1
            )
        except Exception as exc:  # noqa: BLE001
            return self._failure(meta=meta, operation="export", exc=exc)

        has_more = len(records) > limit
        records = records[:limit]
        last_position = records[-1].position if records else position.since_position
        return success(
            meta=meta,
            payload=ExportPage(
                records=records,
                has_more=has_more,
                last_position=last_position,
                cursor=ExportCursor(since_position=last_position).encode(),
                cache_policy=_cache_policy(has_more),
            ),
        )

    def _validate_request(
        self,
        *,
        meta: EnvelopeMeta,
        model: type[TRequest],
        payload: dict[str, Any],
    ) -> tuple[TRequest | None, list[ErrorDetail]]:
        """Validate envelope metadata and request payload model."""
        errors = validate_meta(meta)
        if errors:
            return None, errors

        try:
            request = model.model_validate(
                payload,
                context=self._validation_context(),
            )
        except ValidationError as exc:
            return None, [
                validation_error(
                    f"request validation failed: {err['msg']}",
                    code=codes.INVALID_ARGUMENT,
                    metadata={"field": ".".join(str(p) for p in err["loc"])},
                )
                for err in exc.errors()
            ]

        return request, []

    def _validation_context(self) -> dict[str, int]:
        return {
            "max_tags": self._settings.max_tags_per_record,
            "max_tag_length": self._settings.max_tag_length,
        }

    def _failure(
        self, *, meta: EnvelopeMeta, operation: str, exc: Exception
    ) -> Envelope[Any]:
        """Map one raised exception into a failed envelope."""
        if isinstance(exc, RecordConsistencyError):
            _LOGGER.error(
                "%s hit a record consistency violation", operation, exc_info=exc
            )
        if isinstance(exc, IndexAuthorityError):
            return failure(meta=meta, errors=[exception_to_error(exc)])
        if is_postgres_error(exc):
            _LOGGER.warning(
                "%s failed due to postgres error: exception_type=%s",
                operation,
                type(exc).__name__,
                exc_info=exc,
            )
            return failure(meta=meta, errors=[normalize_postgres_error(exc)])
        _LOGGER.warning(
            "%s failed due to dependency error: exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        return failure(
            meta=meta,
            errors=[
                dependency_error(
                    f"{operation} failed",
                    code=codes.DEPENDENCY_FAILURE,
                    metadata={"exception_type": type(exc).__name__},
                )
            ],
        )


def _cache_policy(has_more: bool) -> CachePolicy:
    return CachePolicy.IMMUTABLE if has_more else CachePolicy.REVALIDATE
