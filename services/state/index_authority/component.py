"""Component declaration for Index Authority Service."""

from __future__ import annotations

from collections.abc import Mapping

from packages.herald_shared.config import HeraldSettings
from packages.herald_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_index_authority")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="state",
        module_roots=frozenset({ModuleRoot("services.state.index_authority")}),
        public_api_roots=frozenset(
            {ModuleRoot("services.state.index_authority.service")}
        ),
        owns_resources=frozenset({ComponentId("substrate_postgres")}),
    )
)


def build_component(
    *, settings: HeraldSettings, components: Mapping[str, object]
) -> object:
    """Build the runtime service instance for this component."""
    del components
    from services.state.index_authority.service import build_index_authority_service

    return build_index_authority_service(settings=settings)
