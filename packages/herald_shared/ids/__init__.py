"""ULID helpers for application-generated identifiers."""

from packages.herald_shared.ids.ulid import (
    generate_ulid_bytes,
    generate_ulid_str,
    ulid_bytes_to_str,
)

__all__ = [
    "generate_ulid_bytes",
    "generate_ulid_str",
    "ulid_bytes_to_str",
]
