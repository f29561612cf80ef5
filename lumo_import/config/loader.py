from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DatabaseConfig, ImportConfig, ImportRule, NormalizerSettings
from ..models.import_type import ImportType

"""Config loader.

Responsibilities:
- Load the YAML batch config (``config/import.yml`` by default)
- Validate it against the packaged ``config_schema.json``
- Apply defaults and build the frozen config objects
- Load a custom header mapping YAML (``raw header: canonical field``)
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
    "load_header_mapping",
]

DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).parent / "config_schema.json"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or malformed, or the data fails
            validation (missing required keys, wrong types, unknown keys).
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


def _read_yaml(path: Path, what: str) -> Any:
    if not path.exists():
        raise ConfigError(f"{what} not found: {path}")
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e


def _build_rules(raw_rules: list[dict[str, Any]]) -> list[ImportRule]:
    rules = []
    for raw in raw_rules:
        try:
            import_type = ImportType.parse(raw["type"])
        except ValueError as e:
            raise ConfigError(f"config validation failed: {e}") from e
        rules.append(ImportRule(pattern=raw["pattern"], import_type=import_type, sheet=raw.get("sheet")))
    return rules


def _check_patterns(patterns: dict[str, list[str]]) -> None:
    for field, regexes in patterns.items():
        for rx in regexes:
            try:
                re.compile(rx)
            except re.error as e:
                raise ConfigError(f"invalid header pattern for {field}: {rx!r} ({e})") from e


def load_config(path: Path) -> ImportConfig:
    data = _read_yaml(path, "config file")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    pricing = NormalizerSettings(**data.get("pricing", {}))
    header_patterns = data.get("header_patterns")
    if header_patterns:
        _check_patterns(header_patterns)

    db_raw = data.get("database", {})
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(
        source_directory=data["source_directory"],
        imports=_build_rules(data["imports"]),
        pricing=pricing,
        detect_title_row=data.get("detect_title_row", True),
        header_patterns=header_patterns or None,
        database=db,
    )


def load_header_mapping(path: Path) -> dict[str, str]:
    """Load a ``{raw header: canonical field}`` YAML mapping."""
    data = _read_yaml(path, "mapping file")
    if not isinstance(data, dict) or not data:
        raise ConfigError(f"mapping file must contain a non-empty mapping: {path}")
    mapping = {}
    for raw, field in data.items():
        if field is None or not str(field).strip():
            raise ConfigError(f"mapping for header {raw!r} is empty")
        mapping[str(raw)] = str(field).strip()
    return mapping
