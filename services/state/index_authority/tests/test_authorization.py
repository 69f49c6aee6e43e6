"""Tests for scope authorization and per-kind auto-label policy."""

from __future__ import annotations

import pytest

from services.state.index_authority.authorization import AuthorizationGuard, viewer_for
from services.state.index_authority.domain import ScopeKind, ScopeRecord
from services.state.index_authority.errors import ScopeAccessDenied
from services.state.index_authority.scopes import policy_for

_PUBLIC = ScopeRecord(seq=1, kind=ScopeKind.INDEXER, scope_id="public", controller=None)
_PUBLIC_INBOX = ScopeRecord(seq=2, kind=ScopeKind.INBOX, scope_id="public", controller=None)
_ALICE = ScopeRecord(seq=3, kind=ScopeKind.INBOX, scope_id="s-alice", controller="alice")
_ALICE_INDEXER = ScopeRecord(
    seq=4, kind=ScopeKind.INDEXER, scope_id="i-alice", controller="alice"
)


def test_viewer_for_maps_anonymous_to_none() -> None:
    """Anonymous principals have no label view."""
    assert viewer_for("anonymous") is None
    assert viewer_for("alice") == "alice"


@pytest.mark.parametrize("principal", ["anonymous", "alice", "bob"])
def test_anyone_may_query_public_scopes(principal: str) -> None:
    """Public scopes are readable by every principal."""
    AuthorizationGuard().authorize_query(scope=_PUBLIC, principal=principal)


def test_only_controller_may_query_controlled_scopes() -> None:
    """Controlled scopes are private to their controller."""
    guard = AuthorizationGuard()
    guard.authorize_query(scope=_ALICE, principal="alice")
    for principal in ("bob", "anonymous"):
        with pytest.raises(ScopeAccessDenied):
            guard.authorize_query(scope=_ALICE, principal=principal)


def test_label_rules_for_public_and_controlled_scopes() -> None:
    """Identified principals label public scopes; controllers label their own."""
    guard = AuthorizationGuard()
    guard.authorize_label(scope=_PUBLIC, principal="bob")
    guard.authorize_label(scope=_ALICE, principal="alice")
    with pytest.raises(ScopeAccessDenied):
        guard.authorize_label(scope=_PUBLIC, principal="anonymous")
    with pytest.raises(ScopeAccessDenied):
        guard.authorize_label(scope=_ALICE, principal="bob")


def test_export_is_controller_only_and_never_public() -> None:
    """Public scopes cannot be dumped by anyone."""
    guard = AuthorizationGuard()
    guard.authorize_export(scope=_ALICE, principal="alice")
    for principal in ("alice", "anonymous"):
        with pytest.raises(ScopeAccessDenied):
            guard.authorize_export(scope=_PUBLIC, principal=principal)
    with pytest.raises(ScopeAccessDenied):
        guard.authorize_export(scope=_ALICE, principal="bob")


def test_scope_access_denied_maps_to_permission_error() -> None:
    """Denials surface through the builtin permission family."""
    assert issubclass(ScopeAccessDenied, PermissionError)


def test_indexer_auto_labels_identified_submitters_in_public_scope() -> None:
    """Public indexer submissions are accepted in the submitter's view."""
    policy = policy_for(ScopeKind.INDEXER)

    assert policy.accepts_tombstone is True
    assert policy.auto_label_viewer(scope=_PUBLIC, principal="bob") == "bob"
    assert policy.auto_label_viewer(scope=_PUBLIC, principal="anonymous") is None
    assert policy.auto_label_viewer(scope=_ALICE_INDEXER, principal="alice") == "alice"
    assert policy.auto_label_viewer(scope=_ALICE_INDEXER, principal="bob") is None


def test_inbox_only_auto_labels_for_its_controller() -> None:
    """Public inbox submissions stay neutral for everyone."""
    policy = policy_for(ScopeKind.INBOX)

    assert policy.accepts_tombstone is False
    assert policy.auto_label_viewer(scope=_PUBLIC_INBOX, principal="bob") is None
    assert policy.auto_label_viewer(scope=_ALICE, principal="alice") == "alice"
    assert policy.auto_label_viewer(scope=_ALICE, principal="bob") is None
