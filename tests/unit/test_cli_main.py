from __future__ import annotations

import json
from pathlib import Path

from lumo_import.cli import main as cli_main

INVENTORY_HEADER = ["SKU", "Descripción", "Categoría", "Costo", "PVP", "Cantidad"]


def _json_from(out: str) -> dict:
    return json.loads(out[out.index("{\n"):])


def test_single_file_success_prints_result(make_workbook, inventory_rows, capsys):
    path = make_workbook("inventario.xlsx", inventory_rows)
    code = cli_main([str(path), "--type", "INVENTORY"])
    out = capsys.readouterr().out
    assert code == 0
    data = _json_from(out)
    assert data["success"] is True
    assert data["data"][0]["code"] == "LUM-1"
    assert data["data"][0]["grossProfit"] == 78


def test_single_file_validation_failure_exit_2(make_workbook, capsys):
    path = make_workbook(
        "inventario.xlsx",
        [INVENTORY_HEADER, ["", "Bombillo LED", "Luminarias", "100", "180", "10"]],
    )
    code = cli_main([str(path), "--type", "inventory"])
    data = _json_from(capsys.readouterr().out)
    assert code == 2
    assert data == {"success": False, "errors": ["Row 1: Missing product code"]}


def test_single_file_project_payload(make_workbook, capsys):
    path = make_workbook(
        "Obra Central.xlsx",
        [["Código", "Descripción", "Cantidad", "Costo", "Precio venta"], ["P1", "Panel", 3, 50, 90]],
    )
    code = cli_main([str(path), "--type", "projects"])
    data = _json_from(capsys.readouterr().out)
    assert code == 0
    assert data["projectName"] == "Obra Central"
    assert data["totalProfit"] == 120


def test_single_file_requires_type(make_workbook, inventory_rows, capsys):
    path = make_workbook("inventario.xlsx", inventory_rows)
    assert cli_main([str(path)]) == 1
    assert "ERROR --type is required" in capsys.readouterr().out


def test_single_file_unknown_type(make_workbook, inventory_rows, capsys):
    path = make_workbook("inventario.xlsx", inventory_rows)
    assert cli_main([str(path), "--type", "orders"]) == 1
    assert "unsupported import type" in capsys.readouterr().out


def test_single_file_missing_file(temp_workdir: Path, capsys):
    assert cli_main(["nope.xlsx", "--type", "CATALOG"]) == 1
    assert "ERROR file not found" in capsys.readouterr().out


def test_single_file_custom_mapping(make_workbook, temp_workdir: Path, capsys):
    path = make_workbook("catalogo.xlsx", [["Ref interna", "Nombre comercial"], ["X1", "Foco"]])
    mapping = temp_workdir / "config" / "mapping.yml"
    mapping.write_text("Ref interna: code\nNombre comercial: description\n", encoding="utf-8")
    code = cli_main([str(path), "--type", "CATALOG", "--mapping", str(mapping)])
    data = _json_from(capsys.readouterr().out)
    assert code == 0
    assert data["data"] == [{"code": "X1", "description": "Foco", "category": "CATALOGO"}]


def test_single_file_unreadable_mapping_is_fatal(make_workbook, inventory_rows, capsys):
    path = make_workbook("inventario.xlsx", inventory_rows)
    assert cli_main([str(path), "--type", "INVENTORY", "--mapping", "missing.yml"]) == 1
    assert "ERROR config: mapping file not found" in capsys.readouterr().out


def test_single_file_persist_in_mock_mode(make_workbook, inventory_rows, capsys):
    path = make_workbook("inventario.xlsx", inventory_rows)
    code = cli_main([str(path), "--type", "INVENTORY", "--persist"])
    out = capsys.readouterr().out
    assert code == 0
    assert "mode=mock created=1 updated=0 failed=0" in out
    assert _json_from(out)["persisted"] == {"created": 1, "updated": 0, "failed": 0, "errors": []}


def test_batch_mode_uses_config_option(temp_workdir: Path, make_workbook, inventory_rows, capsys):
    cfg = temp_workdir / "config" / "custom.yml"
    cfg.write_text(
        "source_directory: ./data\nimports:\n  - {pattern: '*.xlsx', type: INVENTORY}\n",
        encoding="utf-8",
    )
    make_workbook("stock.xlsx", inventory_rows)
    code = cli_main(["--config", str(cfg)])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY files=1/1 success=1 failed=0 items=1 created=1 updated=0 skipped_files=0" in out
