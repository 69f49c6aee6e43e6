"""Shared Herald configuration API."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    ComponentsSettings,
    HeraldSettings,
    LoggingSettings,
    resolve_component_settings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ComponentsSettings",
    "HeraldSettings",
    "LoggingSettings",
    "load_settings",
    "resolve_component_settings",
]
