"""Pydantic settings for Index Authority Service behavior."""

from __future__ import annotations

import hashlib

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.herald_shared.config import HeraldSettings, resolve_component_settings
from services.state.index_authority.component import SERVICE_COMPONENT_ID


class IndexAuthoritySettings(BaseModel):
    """Index Authority Service runtime behavior settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    digest_algorithm: str = "sha256"
    digest_version: str = "b1"
    query_page_limit: int = Field(default=100, gt=0, le=1000)
    export_page_limit: int = Field(default=100, gt=0, le=1000)
    scope_cache_capacity: int = Field(default=1000, gt=0)
    schema_cache_capacity: int = Field(default=128, gt=0)
    max_tags_per_record: int = Field(default=64, gt=0)
    max_tag_length: int = Field(default=256, gt=0)

    @field_validator("digest_algorithm")
    @classmethod
    def _validate_digest_algorithm(cls, value: str) -> str:
        """Accept only 256-bit digests that ``hashlib`` provides everywhere."""
        normalized = value.strip().lower()
        if normalized not in {"sha256", "sha3_256", "blake2s"}:
            raise ValueError("digest_algorithm must be one of: sha256, sha3_256, blake2s")
        if normalized not in hashlib.algorithms_available:
            raise ValueError(f"digest_algorithm '{normalized}' is unavailable")
        return normalized

    @field_validator("digest_version")
    @classmethod
    def _validate_digest_version(cls, value: str) -> str:
        """Require a short alphanumeric version token."""
        normalized = value.strip().lower()
        if not normalized.isalnum():
            raise ValueError("digest_version must be a non-empty alphanumeric token")
        return normalized


def resolve_index_authority_settings(
    settings: HeraldSettings,
) -> IndexAuthoritySettings:
    """Resolve IAS settings from ``components.service.index_authority``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=IndexAuthoritySettings,
    )
