"""ULID generation in canonical 26-character Crockford Base32 form.

The high 48 bits hold a millisecond timestamp and the low 80 bits are random,
so ids generated later sort after ids generated earlier.
"""

from __future__ import annotations

import secrets
import time

_ULID_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"


def ulid_bytes_to_str(value: bytes) -> str:
    """Encode 16 big-endian bytes as a 26-char ULID string."""
    if len(value) != 16:
        raise ValueError("ULID bytes must be exactly 16 bytes")
    number = int.from_bytes(value, byteorder="big", signed=False)
    chars: list[str] = []
    for _ in range(26):
        number, remainder = divmod(number, 32)
        chars.append(_ULID_ALPHABET[remainder])
    return "".join(reversed(chars))


def generate_ulid_bytes(*, timestamp_ms: int | None = None) -> bytes:
    """Generate a ULID as 16 big-endian bytes."""
    ts_ms = int(time.time() * 1000) if timestamp_ms is None else int(timestamp_ms)
    if ts_ms < 0 or ts_ms >= (1 << 48):
        raise ValueError("timestamp_ms out of ULID 48-bit range")
    entropy = int.from_bytes(secrets.token_bytes(10), byteorder="big", signed=False)
    return ((ts_ms << 80) | entropy).to_bytes(16, byteorder="big", signed=False)


def generate_ulid_str(*, timestamp_ms: int | None = None) -> str:
    """Generate a ULID string."""
    return ulid_bytes_to_str(generate_ulid_bytes(timestamp_ms=timestamp_ms))
