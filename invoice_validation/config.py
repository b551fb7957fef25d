"""
Validation configuration: defaults, scoped merging, and file loading.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ValidationError

from .schemas import ValidationConfig

logger = logging.getLogger(__name__)

CONFIG_GROUPS = ("rules", "tolerances", "thresholds")

ConfigInput = Union[ValidationConfig, Mapping[str, Any]]


class ConfigError(ValueError):
    """Raised for malformed configuration input."""


def default_config() -> ValidationConfig:
    return ValidationConfig()


def _as_mapping(value: Any, context: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, BaseModel):
        return value.model_dump()
    if not isinstance(value, Mapping):
        raise ConfigError(f"{context} config must be a mapping, got {type(value).__name__}.")
    return dict(value)


def merge_config(base: ValidationConfig, update: Optional[ConfigInput]) -> ValidationConfig:
    """Merge ``update`` over ``base`` one group at a time.

    Keys missing from an update group keep their ``base`` values, so
    ``{"thresholds": {"low": 2}}`` leaves medium/high/critical alone.
    Raises ``pydantic.ValidationError`` when the merged config breaks an
    invariant (negative tolerance, non-ascending thresholds).
    """
    patch = _as_mapping(update, "Validation")
    unknown = set(patch) - set(CONFIG_GROUPS)
    if unknown:
        raise ConfigError(f"Unknown config groups: {', '.join(sorted(unknown))}.")

    merged: Dict[str, Any] = {}
    for group in CONFIG_GROUPS:
        current = getattr(base, group).model_dump()
        merged[group] = {**current, **_as_mapping(patch.get(group), group)}
    return ValidationConfig.model_validate(merged)


def load_config(path: Path) -> ValidationConfig:
    """Read a YAML or JSON config file and merge it over the defaults."""
    suffix = path.suffix.lower()
    try:
        with path.open("r", encoding="utf-8") as handle:
            if suffix in (".yaml", ".yml"):
                payload = yaml.safe_load(handle)
            elif suffix == ".json":
                payload = json.load(handle)
            else:
                raise ConfigError(f"Unsupported config format '{suffix}' for {path}.")
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not read config {path}: {exc}") from exc

    try:
        config = merge_config(default_config(), payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid validation config in {path}: {exc}") from exc
    logger.debug("Loaded validation config from %s", path)
    return config
