"""Scope kind policies and the scope registry read-through cache."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock

from services.state.index_authority.authorization import viewer_for
from services.state.index_authority.domain import ScopeKind, ScopeRecord
from services.state.index_authority.errors import ScopeNotFoundError
from services.state.index_authority.interfaces import IndexRepository


@dataclass(frozen=True)
class ScopeKindPolicy:
    """Behavior that differs between indexers and inboxes."""

    kind: ScopeKind
    accepts_tombstone: bool
    public_auto_label: bool

    def auto_label_viewer(self, *, scope: ScopeRecord, principal: str) -> str | None:
        """Return who receives an accepted label on insert, if anyone."""
        viewer = viewer_for(principal)
        if viewer is None:
            return None
        if scope.controller == viewer:
            return viewer
        if scope.is_public and self.public_auto_label:
            return viewer
        return None


SCOPE_POLICIES: dict[ScopeKind, ScopeKindPolicy] = {
    ScopeKind.INDEXER: ScopeKindPolicy(
        kind=ScopeKind.INDEXER, accepts_tombstone=True, public_auto_label=True
    ),
    ScopeKind.INBOX: ScopeKindPolicy(
        kind=ScopeKind.INBOX, accepts_tombstone=False, public_auto_label=False
    ),
}


def policy_for(kind: ScopeKind) -> ScopeKindPolicy:
    return SCOPE_POLICIES[kind]


class ScopeRegistry:
    """Resolve ``(kind, scope_id)`` to a scope through a bounded LRU cache.

    Only identity and controller are cached; controllers never change after
    creation. Misses are not cached so newly registered scopes resolve
    immediately.
    """

    def __init__(self, *, repository: IndexRepository, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("scope cache capacity must be > 0")
        self._repository = repository
        self._capacity = capacity
        self._cache: OrderedDict[tuple[ScopeKind, str], ScopeRecord] = OrderedDict()
        self._lock = Lock()

    def resolve(self, *, kind: ScopeKind, scope_id: str) -> ScopeRecord:
        key = (kind, scope_id)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return cached

        scope = self._repository.get_scope(kind=kind, scope_id=scope_id)
        if scope is None:
            raise ScopeNotFoundError(f"{kind.value} scope not found: {scope_id}")

        with self._lock:
            self._cache[key] = scope
            self._cache.move_to_end(key)
            while len(self._cache) > self._capacity:
                self._cache.popitem(last=False)
        return scope

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
