# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from lumo_import.logging.init import reset_logging

INVENTORY_HEADER = ["SKU", "Descripción", "Categoría", "Costo", "PVP", "Cantidad"]


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
imports:
  - pattern: "inventario*.xlsx"
    type: INVENTORY
  - pattern: "catalogo*.xlsx"
    type: CATALOG
  - pattern: "proyecto*.xlsx"
    type: PROJECT
pricing:
  fixed_cost_pct: 2
detect_title_row: true
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: lumo
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def build_workbook(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    """Write ``sheets`` (name -> rows) as an .xlsx without pandas headers."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return path


@pytest.fixture()
def make_workbook(temp_workdir: Path):
    """Factory: ``make_workbook("name.xlsx", rows, sheet_name="Hoja1")`` -> Path under data/."""

    def _make(name: str, rows: list[list[object]], sheet_name: str = "Hoja1",
              extra_sheets: dict[str, list[list[object]]] | None = None) -> Path:
        sheets = {sheet_name: rows}
        sheets.update(extra_sheets or {})
        return build_workbook(temp_workdir / "data" / name, sheets)

    return _make


@pytest.fixture()
def inventory_rows() -> list[list[object]]:
    return [
        INVENTORY_HEADER,
        ["LUM-1", "Bombillo LED", "Luminarias", "100", "180", "10"],
    ]
