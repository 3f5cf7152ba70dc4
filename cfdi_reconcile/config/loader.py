from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_HEADER_LABELS,
    CrossCheckConfig,
    HeaderMapping,
    ReconcileSettings,
)
from ..models.record import RECORD_FIELDS

"""Config loader.

Responsibilities:
- Load an optional YAML file (``-config``); no file means built-in defaults
- Validate it against the bundled ``config_schema.json`` (no extra keys)
- Merge header labels over the defaults and check the key field
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "default_settings",
    "load_config",
    "settings_from_dict",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def settings_from_dict(data: dict[str, Any]) -> ReconcileSettings:
    """Build settings from already schema-valid data."""
    labels = dict(DEFAULT_HEADER_LABELS)
    labels.update(data.get("header_labels", {}))
    unknown = sorted(set(labels) - RECORD_FIELDS)
    if unknown:
        raise ConfigError(f"header_labels names unknown record fields: {unknown}")

    key_field = data.get("key_field", "cfdi_id")
    if key_field not in RECORD_FIELDS:
        raise ConfigError(f"key_field '{key_field}' is not a record field")
    if key_field not in labels:
        raise ConfigError(f"key_field '{key_field}' has no header label")

    cc_raw = data.get("cross_check", {})
    cross_check = CrossCheckConfig(
        enabled=cc_raw.get("enabled", True),
        sample_size=cc_raw.get("sample_size", 5),
    )
    return ReconcileSettings(
        key_field=key_field,
        headers=HeaderMapping(labels),
        cross_check=cross_check,
        progress_every=data.get("progress_every", 100_000),
        extensions=tuple(data.get("extensions", [".json"])),
    )


def default_settings() -> ReconcileSettings:
    return settings_from_dict({})


def load_config(path: Path | None) -> ReconcileSettings:
    if path is None:
        return default_settings()
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)
    return settings_from_dict(data)
