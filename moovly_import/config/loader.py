from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DEFAULT_TABLES, DatabaseConfig, ImportConfig
from ..models.import_outcome import DEFAULT_SAMPLE_LIMIT
from ..models.records import RecordKind

"""Config loader.

Responsibilities:
- Load YAML config/import.yml
- Validate against config_schema.json (shipped next to this module)
- Reject unknown IANA timezone names
- Apply defaults (timezone=UTC, default table names, sample limit)
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or data violates it
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


def _validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown timezone: {name}") from e
    return name


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

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
    tables = dict(DEFAULT_TABLES)
    for kind_name, table in (data.get("tables") or {}).items():
        tables[RecordKind(kind_name)] = table

    return ImportConfig(
        source_directory=data["source_directory"],
        sheet_kinds={str(sheet): RecordKind(kind) for sheet, kind in data["sheet_kinds"].items()},
        database=db,
        tables=tables,
        timezone=_validate_timezone(data.get("timezone", "UTC")),
        unmatched_sample_limit=data.get("unmatched_sample_limit", DEFAULT_SAMPLE_LIMIT),
    )
