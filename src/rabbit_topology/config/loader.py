"""JSON/YAML + environment variable config loader."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, cast

import structlog
import yaml
from pydantic import ValidationError

from rabbit_topology.config.defaults import load_defaults, merge_configs
from rabbit_topology.config.models import BrokerConfig, TopologyConfig
from rabbit_topology.errors import ConfigNotFoundError, ConfigParseError

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = Path("rabbit-config.json")

# Matches ${VAR} or ${VAR:-default}
_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-((?:[^}\\]|\\.)*))?}")


def _resolve_env_str(value: str) -> str:
    """Replace all ${VAR} / ${VAR:-default} references in a string."""

    def _replace(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        env_val = os.environ.get(var_name)
        if env_val is not None:
            return env_val
        if default is not None:
            return default.replace("\\}", "}")
        msg = f"Environment variable '{var_name}' is not set and no default provided"
        raise ValueError(msg)

    return _ENV_PATTERN.sub(_replace, value)


def resolve_env_vars(data: Any) -> Any:
    """Recursively resolve ${VAR} and ${VAR:-default} in parsed document data."""
    if isinstance(data, str):
        return _resolve_env_str(data)
    if isinstance(data, dict):
        return {k: resolve_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [resolve_env_vars(item) for item in data]
    return data


def _read_error(p: Path, exc: OSError | UnicodeDecodeError) -> ConfigParseError:
    return ConfigParseError(f"Failed to read {p}: {exc}", source=p)


def _parse_json(p: Path) -> Any:
    try:
        with p.open(encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError) as exc:
        raise _read_error(p, exc) from exc
    except json.JSONDecodeError as exc:
        msg = (
            f"Failed to parse JSON in {p} at line {exc.lineno}, "
            f"column {exc.colno}: {exc.msg}"
        )
        raise ConfigParseError(msg, source=p) from exc


def _parse_yaml(p: Path) -> Any:
    try:
        with p.open(encoding="utf-8") as f:
            return yaml.safe_load(f)
    except (OSError, UnicodeDecodeError) as exc:
        raise _read_error(p, exc) from exc
    except yaml.YAMLError as exc:
        msg = f"Failed to parse YAML in {p}"
        if hasattr(exc, "problem_mark") and exc.problem_mark is not None:
            mark = exc.problem_mark
            msg += f" at line {mark.line + 1}, column {mark.column + 1}"
        msg += f": {exc}"
        raise ConfigParseError(msg, source=p) from exc


def load_document(path: str | Path) -> dict[str, Any]:
    """Load a JSON or YAML file and return its contents as a dict.

    The format is picked by suffix: ``.json`` is read as JSON, anything else
    as YAML.  Environment variable references are resolved afterwards.
    """
    p = Path(path)
    if not p.is_file():
        raise ConfigNotFoundError(p)
    data = _parse_json(p) if p.suffix.lower() == ".json" else _parse_yaml(p)
    if not isinstance(data, dict):
        msg = f"Expected a mapping at top level in {p}, got {type(data).__name__}"
        raise ConfigParseError(msg, source=p)
    try:
        return cast(dict[str, Any], resolve_env_vars(data))
    except ValueError as exc:
        raise ConfigParseError(f"{exc} (in {p})", source=p) from exc


def parse_topology_config(
    data: dict[str, Any], *, source: str | Path | None = None
) -> TopologyConfig:
    """Validate an already-parsed document as a TopologyConfig."""
    try:
        return TopologyConfig.model_validate(data)
    except ValidationError as exc:
        label = source or "<document>"
        msg = f"Invalid topology config ({label}):\n{exc}"
        raise ConfigParseError(msg, source=source) from exc


def load_topology_config(path: str | Path = DEFAULT_CONFIG_PATH) -> TopologyConfig:
    """Load and validate a topology document."""
    config = parse_topology_config(load_document(path), source=path)
    logger.info(
        "config.loaded",
        path=str(path),
        exchanges=len(config.exchanges),
        queues=len(config.queues),
        bindings=config.binding_count(),
    )
    return config


def load_broker_config(path: str | Path | None = None) -> BrokerConfig:
    """Load broker settings from built-in defaults, optionally merged with overrides."""
    base = cast(dict[str, Any], resolve_env_vars(load_defaults("broker")))
    if path is not None:
        base = merge_configs(base, load_document(path))
    try:
        return BrokerConfig.model_validate(base)
    except ValidationError as exc:
        source = path or "built-in defaults"
        msg = f"Invalid broker config ({source}):\n{exc}"
        raise ConfigParseError(msg, source=path) from exc
