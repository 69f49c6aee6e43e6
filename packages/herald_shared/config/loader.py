"""Entry point for building ``HeraldSettings``.

Precedence, highest first:
1) ``cli_params`` passed by the caller
2) ``HERALD_`` environment variables (``__`` for nesting), for example
   ``HERALD_COMPONENTS__SERVICE__INDEX_AUTHORITY__QUERY_PAGE_LIMIT=50``
3) the YAML file (``~/.config/herald/herald.yaml`` unless overridden)
4) model defaults
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from .models import _ACTIVE_CONFIG_PATH, DEFAULT_CONFIG_PATH, HeraldSettings


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    config_path: str | Path | None = None,
) -> HeraldSettings:
    """Resolve root settings through the standard precedence cascade."""
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    token = _ACTIVE_CONFIG_PATH.set(path)
    try:
        return HeraldSettings(**dict(cli_params or {}))
    finally:
        _ACTIVE_CONFIG_PATH.reset(token)
