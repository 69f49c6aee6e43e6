"""Convenience constructors for typed envelope responses."""

from __future__ import annotations

from typing import Any, Iterable, TypeVar

from packages.herald_shared.errors import ErrorDetail

from .envelope import Envelope
from .meta import EnvelopeMeta
from .payload import Payload

T = TypeVar("T")


def success(*, meta: EnvelopeMeta, payload: T) -> Envelope[T]:
    """Build a successful envelope with payload and no errors."""
    return Envelope[T](metadata=meta, payload=Payload[T](value=payload), errors=[])


def failure(*, meta: EnvelopeMeta, errors: Iterable[ErrorDetail]) -> Envelope[Any]:
    """Build a failed envelope. Failed envelopes never carry partial payloads."""
    return Envelope[Any](metadata=meta, payload=None, errors=list(errors))
