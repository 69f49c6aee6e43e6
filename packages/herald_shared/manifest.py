"""Component manifests and the process-local registry.

Every Herald component declares a manifest at import time. Bootstrap code
reads the registry to derive per-service Postgres schema names and to check
that each owned resource has exactly one owning service.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from threading import RLock
from typing import Final, FrozenSet, Literal, NewType, Optional

ComponentId = NewType("ComponentId", str)
ModuleRoot = NewType("ModuleRoot", str)

Layer = Literal[0, 1]
System = Literal["state"]
ResourceKind = Literal["substrate"]

_COMPONENT_ID_RE: Final[re.Pattern[str]] = re.compile(r"^[a-z][a-z0-9_]{1,62}$")
_MODULE_ROOT_RE: Final[re.Pattern[str]] = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)*$"
)


class ManifestError(ValueError):
    """Raised when a manifest or its registration is invalid."""


@dataclass(frozen=True, slots=True)
class ComponentManifest:
    """Fields shared by all component manifests."""

    id: ComponentId
    layer: Layer
    system: System
    module_roots: FrozenSet[ModuleRoot]

    def __post_init__(self) -> None:
        validate_component_id(self.id)
        if not self.module_roots:
            raise ManifestError("module_roots must not be empty")
        for root in self.module_roots:
            validate_module_root(root)


@dataclass(frozen=True, slots=True)
class ResourceManifest(ComponentManifest):
    """Layer-0 substrate such as the Postgres engine."""

    layer: Literal[0]
    kind: ResourceKind
    owner_service_id: Optional[ComponentId] = None

    def __post_init__(self) -> None:
        super(ResourceManifest, self).__post_init__()
        if self.owner_service_id is not None:
            validate_component_id(self.owner_service_id)


@dataclass(frozen=True, slots=True)
class ServiceManifest(ComponentManifest):
    """Layer-1 service exposing a public API."""

    layer: Literal[1]
    public_api_roots: FrozenSet[ModuleRoot]
    owns_resources: Optional[FrozenSet[ComponentId]] = None

    def __post_init__(self) -> None:
        super(ServiceManifest, self).__post_init__()
        if not self.public_api_roots:
            raise ManifestError("public_api_roots must not be empty")
        for root in self.public_api_roots:
            validate_module_root(root)

    @property
    def schema_name(self) -> str:
        """Postgres schema owned by this service."""
        return component_id_to_schema_name(self.id)


@dataclass(slots=True)
class ManifestRegistry:
    """Thread-safe in-memory manifest registry."""

    _components: dict[ComponentId, ComponentManifest] = field(default_factory=dict)
    _lock: RLock = field(default_factory=RLock)

    def register_component(self, manifest: ComponentManifest) -> None:
        """Register ``manifest``; re-registering an identical manifest is a no-op."""
        with self._lock:
            existing = self._components.get(manifest.id)
            if existing is not None and existing != manifest:
                raise ManifestError(
                    f"duplicate component id with mismatched definition: {manifest.id}"
                )
            self._components[manifest.id] = manifest
            self._validate_ownership(strict=False)

    def get_component(self, component_id: ComponentId) -> ComponentManifest:
        try:
            return self._components[component_id]
        except KeyError as exc:
            raise ManifestError(f"component not registered: {component_id}") from exc

    def list_services(self) -> tuple[ServiceManifest, ...]:
        return tuple(
            sorted(
                (c for c in self._components.values() if isinstance(c, ServiceManifest)),
                key=lambda item: str(item.id),
            )
        )

    def list_resources(self) -> tuple[ResourceManifest, ...]:
        return tuple(
            sorted(
                (c for c in self._components.values() if isinstance(c, ResourceManifest)),
                key=lambda item: str(item.id),
            )
        )

    def assert_valid(self) -> None:
        """Re-check ownership, requiring every named owner to be registered."""
        with self._lock:
            self._validate_ownership(strict=True)

    def _validate_ownership(self, *, strict: bool) -> None:
        declared: dict[ComponentId, ComponentId] = {}
        for service in self.list_services():
            for resource_id in service.owns_resources or frozenset():
                owner = declared.get(resource_id)
                if owner is not None and owner != service.id:
                    raise ManifestError(
                        f"resource '{resource_id}' has multiple owners: {owner} and {service.id}"
                    )
                declared[resource_id] = service.id

        service_ids = {service.id for service in self.list_services()}
        for resource in self.list_resources():
            owner_id = resource.owner_service_id
            if owner_id is None:
                continue
            if owner_id not in service_ids:
                if strict:
                    raise ManifestError(
                        f"resource '{resource.id}' references unknown owner service '{owner_id}'"
                    )
                continue
            expected = declared.get(resource.id)
            if expected is not None and expected != owner_id:
                raise ManifestError(
                    f"resource '{resource.id}' owner mismatch: '{expected}' vs '{owner_id}'"
                )


def validate_component_id(value: ComponentId) -> None:
    raw = str(value)
    if not _COMPONENT_ID_RE.fullmatch(raw):
        raise ManifestError(
            f"invalid component id '{raw}'; expected ^[a-z][a-z0-9_]{{1,62}}$"
        )


def validate_module_root(value: ModuleRoot) -> None:
    raw = str(value)
    if not _MODULE_ROOT_RE.fullmatch(raw):
        raise ManifestError(f"invalid module root '{raw}'")


def component_id_to_schema_name(component_id: ComponentId) -> str:
    """Schema names are the component id verbatim."""
    validate_component_id(component_id)
    return str(component_id)


_DEFAULT_REGISTRY = ManifestRegistry()


def register_component(manifest: ComponentManifest) -> ComponentManifest:
    """Register ``manifest`` in the process registry and return it."""
    _DEFAULT_REGISTRY.register_component(manifest)
    return manifest


def get_registry() -> ManifestRegistry:
    return _DEFAULT_REGISTRY
