from __future__ import annotations

from pathlib import Path

import pytest

from lumo_import.config.loader import ConfigError, load_config, load_header_mapping
from lumo_import.models.import_type import ImportType


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.source_directory == "./data"
    assert [r.import_type for r in cfg.imports] == [ImportType.INVENTORY, ImportType.CATALOG, ImportType.PROJECT]
    assert cfg.pricing.fixed_cost_pct == 2
    assert cfg.pricing.distributor_factor == 0.75
    assert cfg.detect_title_row is True
    assert cfg.header_patterns is None
    assert cfg.database.host == "localhost"
    assert cfg.database.port == 5432
    assert cfg.database.dsn is None


def test_rule_for_uses_first_matching_glob(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.rule_for("Inventario-Octubre.xlsx").import_type is ImportType.INVENTORY
    assert cfg.rule_for("proyecto_obra.xlsx").import_type is ImportType.PROJECT
    assert cfg.rule_for("otros.xlsx") is None


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(temp_workdir / "config" / "missing.yml")


def test_load_config_invalid_yaml(temp_workdir: Path):
    p = temp_workdir / "config" / "import.yml"
    p.write_text("source_directory: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(p)


def test_load_config_minimal_defaults(temp_workdir: Path):
    p = temp_workdir / "config" / "import.yml"
    p.write_text(
        "source_directory: ./data\nimports:\n  - pattern: '*.xlsx'\n    type: catalog\n",
        encoding="utf-8",
    )
    cfg = load_config(p)
    assert cfg.imports[0].import_type is ImportType.CATALOG
    assert cfg.imports[0].sheet is None
    assert cfg.pricing.fixed_cost_pct == 2.0
    assert cfg.pricing.default_project_category == "GENERAL"
    assert cfg.database.host is None


def test_load_config_unknown_import_type(temp_workdir: Path):
    p = temp_workdir / "config" / "import.yml"
    p.write_text("source_directory: ./data\nimports:\n  - pattern: '*.xlsx'\n    type: orders\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="unsupported import type"):
        load_config(p)


def test_load_config_header_patterns(temp_workdir: Path):
    p = temp_workdir / "config" / "import.yml"
    p.write_text(
        "source_directory: ./data\n"
        "imports:\n  - {pattern: '*.xlsx', type: INVENTORY, sheet: Precios}\n"
        "header_patterns:\n  code: ['^articulo$']\n",
        encoding="utf-8",
    )
    cfg = load_config(p)
    assert cfg.header_patterns == {"code": ["^articulo$"]}
    assert cfg.imports[0].sheet == "Precios"


def test_load_config_bad_header_pattern(temp_workdir: Path):
    p = temp_workdir / "config" / "import.yml"
    p.write_text(
        "source_directory: ./data\nimports:\n  - {pattern: '*.xlsx', type: INVENTORY}\n"
        "header_patterns:\n  code: ['([unclosed']\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigError, match="invalid header pattern"):
        load_config(p)


def test_load_header_mapping(temp_workdir: Path):
    p = temp_workdir / "config" / "mapping.yml"
    p.write_text("Ref interna: code\nNombre comercial: description\n", encoding="utf-8")
    assert load_header_mapping(p) == {"Ref interna": "code", "Nombre comercial": "description"}


def test_load_header_mapping_rejects_non_mapping(temp_workdir: Path):
    p = temp_workdir / "config" / "mapping.yml"
    p.write_text("- code\n- description\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="non-empty mapping"):
        load_header_mapping(p)


def test_load_header_mapping_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="mapping file not found"):
        load_header_mapping(temp_workdir / "nope.yml")
