"""Scope-level authorization for query, label and export.

Principals arrive already authenticated. A scope is either public (no
controller) or controlled by exactly one principal; tags are capabilities
and are never access-controlled individually.
"""

from __future__ import annotations

from services.state.index_authority.domain import ANONYMOUS_PRINCIPAL, ScopeRecord
from services.state.index_authority.errors import ScopeAccessDenied


def viewer_for(principal: str) -> str | None:
    """Return the label viewer for ``principal``, or ``None`` when anonymous."""
    if principal == ANONYMOUS_PRINCIPAL:
        return None
    return principal


class AuthorizationGuard:
    """Raise ``ScopeAccessDenied`` when a principal may not act on a scope."""

    def authorize_query(self, *, scope: ScopeRecord, principal: str) -> None:
        if scope.is_public:
            return
        self._require_controller(scope=scope, principal=principal, action="query")

    def authorize_label(self, *, scope: ScopeRecord, principal: str) -> None:
        # Labels in a public scope only shape the labeller's own view.
        if scope.is_public:
            if viewer_for(principal) is None:
                raise ScopeAccessDenied("anonymous principals cannot label records")
            return
        self._require_controller(scope=scope, principal=principal, action="label")

    def authorize_export(self, *, scope: ScopeRecord, principal: str) -> None:
        if scope.is_public:
            raise ScopeAccessDenied("public scopes cannot be exported")
        self._require_controller(scope=scope, principal=principal, action="export")

    def _require_controller(
        self, *, scope: ScopeRecord, principal: str, action: str
    ) -> None:
        if viewer_for(principal) is None or principal != scope.controller:
            raise ScopeAccessDenied(
                f"only the scope controller may {action} {scope.kind.value} scopes"
            )
