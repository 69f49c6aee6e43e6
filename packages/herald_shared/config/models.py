"""Typed settings models for Herald runtime configuration."""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "herald" / "herald.yaml"
COMPONENT_KINDS = ("service", "substrate")

_ACTIVE_CONFIG_PATH: ContextVar[Path] = ContextVar(
    "herald_config_path", default=DEFAULT_CONFIG_PATH
)


class LoggingSettings(BaseModel):
    """Root logging options applied by ``configure_logging``."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "herald"
    environment: str = "dev"


class ComponentNamespaceSettings(BaseModel):
    """Free-form map of component settings under ``components.<kind>``."""

    model_config = ConfigDict(extra="allow")


class ComponentsSettings(BaseModel):
    """The ``components`` subtree, grouped by component kind."""

    model_config = ConfigDict(extra="forbid")

    service: ComponentNamespaceSettings = Field(
        default_factory=ComponentNamespaceSettings
    )
    substrate: ComponentNamespaceSettings = Field(
        default_factory=ComponentNamespaceSettings
    )

    @model_validator(mode="before")
    @classmethod
    def _reject_flat_component_keys(cls, value: object) -> object:
        """Point ``components.service_x`` style keys at the grouped form."""
        if not isinstance(value, dict):
            return value
        for key in value:
            if isinstance(key, str) and key.startswith(
                tuple(f"{kind}_" for kind in COMPONENT_KINDS)
            ):
                kind, _, name = key.partition("_")
                raise ValueError(
                    f"components.{key} is invalid; use components.{kind}.{name} instead"
                )
        return value


class HeraldSettings(BaseSettings):
    """Root settings resolved from init kwargs, env, YAML, then defaults."""

    model_config = SettingsConfigDict(
        env_prefix="HERALD_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    components: ComponentsSettings = Field(default_factory=ComponentsSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(
                settings_cls,
                yaml_file=_ACTIVE_CONFIG_PATH.get(),
                yaml_file_encoding="utf-8",
            ),
        )


TComponentSettings = TypeVar("TComponentSettings", bound=BaseModel)


def resolve_component_settings(
    *,
    settings: HeraldSettings,
    component_id: str,
    model: type[TComponentSettings],
) -> TComponentSettings:
    """Validate ``components.<kind>.<name>`` for a component id like ``service_x``."""
    kind, separator, name = component_id.partition("_")
    if not separator or kind not in COMPONENT_KINDS:
        raise ValueError(f"component id has no known kind prefix: {component_id}")
    namespace = getattr(settings.components, kind).model_dump(mode="python")
    resolved = namespace.get(name, {})
    if not isinstance(resolved, dict):
        raise TypeError(f"components.{kind}.{name} must resolve to an object mapping")
    return model.model_validate(resolved)
