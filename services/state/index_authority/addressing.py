"""Content addressing for submitted records.

A record's identity is a digest over a canonical JSON encoding of everything
that makes it distinct: scope kind and id, sorted tags, data, and the
tombstone flag for indexer records. Logically equal submissions therefore
collide on the same key regardless of tag order or key order in ``data``.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from services.state.index_authority.config import IndexAuthoritySettings
from services.state.index_authority.domain import ScopeKind, ScopeRecord


@dataclass(frozen=True)
class ContentAddress:
    """Digest of one record and its formatted record key."""

    digest_hex: str
    record_id: str


class ContentAddresser:
    """Derive ``<version>:<algorithm>:<hex>`` keys for records."""

    def __init__(self, settings: IndexAuthoritySettings) -> None:
        self._algorithm = settings.digest_algorithm
        self._version = settings.digest_version

    def address(
        self,
        *,
        scope: ScopeRecord,
        tags: Iterable[str],
        data: Mapping[str, Any],
        tombstone: bool | None = None,
    ) -> ContentAddress:
        digest_hex = _digest_payload(
            canonical_record_bytes(
                scope=scope, tags=tags, data=data, tombstone=tombstone
            ),
            algorithm=self._algorithm,
            version=self._version,
        )
        return ContentAddress(
            digest_hex=digest_hex,
            record_id=format_record_id(
                version=self._version, algorithm=self._algorithm, digest_hex=digest_hex
            ),
        )


def canonical_record_bytes(
    *,
    scope: ScopeRecord,
    tags: Iterable[str],
    data: Mapping[str, Any],
    tombstone: bool | None,
) -> bytes:
    """Encode a record as compact, key-sorted UTF-8 JSON."""
    document: dict[str, Any] = {
        "kind": scope.kind.value,
        "scope": scope.scope_id,
        "tags": sorted(set(tags)),
        "data": dict(data),
    }
    if scope.kind == ScopeKind.INDEXER:
        document["tombstone"] = bool(tombstone)
    return json.dumps(
        document, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def format_record_id(*, version: str, algorithm: str, digest_hex: str) -> str:
    return f"{version}:{algorithm}:{digest_hex}"


def _digest_payload(content: bytes, *, algorithm: str, version: str) -> str:
    """Hash ``content`` seeded with the digest version namespace."""
    seeded = f"{version}:".encode("ascii") + b"\0" + content
    return hashlib.new(algorithm, seeded).hexdigest()
