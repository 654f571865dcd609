"""Built-in broker settings shipped with the package, and override merging."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from rabbit_topology.errors import ConfigNotFoundError, ConfigParseError

DEFAULTS_DIR = Path(__file__).parent / "defaults"


def load_defaults(name: str = "broker") -> dict[str, Any]:
    """Read ``defaults/<name>.yaml`` without resolving env var references.

    ``broker.yaml`` holds the connection URL (via ``RABBITMQ_URL``), client
    name and retry backoff that ``load_broker_config`` starts from.
    """
    path = DEFAULTS_DIR / f"{name}.yaml"
    if not path.is_file():
        raise ConfigNotFoundError(path)
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        msg = f"Defaults file {path} must hold a mapping, got {type(data).__name__}"
        raise ConfigParseError(msg, source=path)
    return data


def merge_configs(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge *overrides* onto *base*; nested mappings merge key by key.

    Neither input is mutated.  A non-mapping override (including ``None``)
    replaces the base value outright.
    """
    merged = dict(base)
    for key, override in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(override, dict):
            merged[key] = merge_configs(current, override)
        else:
            merged[key] = override
    return merged
