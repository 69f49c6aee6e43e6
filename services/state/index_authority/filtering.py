"""JSON Schema filtering of record data.

Schemas arrive with queries, usually repeated through a cursor chain, so
compiled validators are cached by a fingerprint of the canonical schema.
"""

from __future__ import annotations

import hashlib
import json
from collections import OrderedDict
from collections.abc import Callable, Mapping
from threading import Lock
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from services.state.index_authority.errors import SchemaFilterError


def schema_fingerprint(schema: Mapping[str, Any]) -> str:
    canonical = json.dumps(schema, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class JsonSchemaDataFilter:
    """Draft 2020-12 validator factory with a bounded LRU compile cache."""

    def __init__(self, *, capacity: int = 128) -> None:
        if capacity <= 0:
            raise ValueError("schema cache capacity must be > 0")
        self._capacity = capacity
        self._validators: OrderedDict[str, Draft202012Validator] = OrderedDict()
        self._lock = Lock()

    def compile(self, schema: Mapping[str, Any]) -> Callable[[Any], bool]:
        fingerprint = schema_fingerprint(schema)
        with self._lock:
            validator = self._validators.get(fingerprint)
            if validator is not None:
                self._validators.move_to_end(fingerprint)
                return validator.is_valid

        try:
            Draft202012Validator.check_schema(schema)
        except SchemaError as exc:
            raise SchemaFilterError(f"schema filter is invalid: {exc.message}") from exc
        validator = Draft202012Validator(schema)

        with self._lock:
            self._validators[fingerprint] = validator
            while len(self._validators) > self._capacity:
                self._validators.popitem(last=False)
        return validator.is_valid

    def __len__(self) -> int:
        with self._lock:
            return len(self._validators)
