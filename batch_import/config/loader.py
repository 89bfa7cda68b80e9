from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..errors import ImportPipelineError
from ..models.config_models import DatabaseConfig, ImportConfig
from ..services.resolver import DefaultPolicy

"""Config loader.

Responsibilities:
- Load YAML config (config/import.yml by default)
- Validate it against the packaged JSON schema
- Apply defaults (dataset=services, batch_size=25, pause_seconds=0.1,
  category default policy=first)
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).with_name("import_schema.json")

DEFAULT_REFERENCE_POLICIES = {
    "counterparty": "none",
    "equipment_unit": "none",
    "personnel": "none",
    "category": "first",
}


class ConfigError(ImportPipelineError):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing / not valid JSON, or the
            config data fails schema validation (missing required keys, wrong
            types, unknown keys).
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


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    policies = dict(DEFAULT_REFERENCE_POLICIES)
    policies.update(data.get("reference_defaults") or {})
    for kind, text in policies.items():
        try:
            DefaultPolicy.parse(text)
        except ValueError as e:
            raise ConfigError(f"config validation failed: reference_defaults.{kind}: {e}") from e
    return ImportConfig(
        tenant_id=data["tenant_id"],
        dataset=data.get("dataset", "services"),
        batch_size=data.get("batch_size", 25),
        pause_seconds=float(data.get("pause_seconds", 0.1)),
        catalog_file=data.get("catalog_file"),
        reference_defaults=policies,
        database=db,
    )
