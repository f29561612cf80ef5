from __future__ import annotations

import math
from collections.abc import Sequence
from pathlib import PurePath
from typing import Any

from ..models.cell import parse_number
from ..models.config_models import NormalizerSettings
from ..models.items import CatalogItem, InventoryItem, ProjectImport, ProjectItem

"""Type-specific normalizers: RawRecord list -> NormalizedItem list.

Pure functions of (records, settings, file name). Nothing raises on bad data:
absent numbers become 0, unreadable prices become NaN and strings become ""
so that every anomaly is reported once, by the validator.

Formulas (percentages on a 0-100 scale):
    fixedCost      = unitCost * fixedCostPct / 100
    totalUnitCost  = unitCost + fixedCost
    margin         = (sellingPrice - totalUnitCost) / sellingPrice * 100   (0 if sellingPrice <= 0)
    grossProfit    = sellingPrice - totalUnitCost
Values supplied by the sheet (margin, grossProfit, project totals, ...) are
trusted as-is.
"""

__all__ = [
    "normalize_inventory",
    "normalize_catalog",
    "normalize_project",
    "category_from_file_name",
    "margin_pct",
]

_TRUTHY = {"si", "sí", "s", "yes", "y", "true", "1", "x"}


def _as_float(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return parse_number(str(value))


def _number(record: dict[str, Any], field: str) -> float:
    """Price-like number: absent -> 0, unreadable text -> NaN (flagged later)."""
    value = record.get(field)
    if value is None:
        return 0.0
    num = _as_float(value)
    return math.nan if num is None else num


def _quantity(record: dict[str, Any], field: str) -> float:
    """Quantity-like number: absent or unreadable -> 0."""
    num = _as_float(record.get(field))
    if num is None or math.isnan(num):
        return 0.0
    return num


def _supplied(record: dict[str, Any], field: str) -> float | None:
    """Value provided by the sheet for a derivable field, or None."""
    num = _as_float(record.get(field))
    if num is None or math.isnan(num):
        return None
    return num


def _text(record: dict[str, Any], field: str) -> str:
    value = record.get(field)
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        # numeric codes such as 1001 come back from the sheet as 1001.0
        return str(int(value))
    return str(value).strip()


def _flag(record: dict[str, Any], field: str) -> bool:
    value = record.get(field)
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return bool(value)
    return str(value).strip().lower() in _TRUTHY


def margin_pct(price: float, cost: float) -> float:
    """Margin of ``price`` over ``cost`` in percent; 0 when price is not positive."""
    if price > 0:
        return ((price - cost) / price) * 100
    return 0.0


def category_from_file_name(file_name: str) -> str:
    """``cintas-led.xlsx`` -> ``CINTAS LED``."""
    stem = PurePath(file_name).stem
    return stem.replace("-", " ").replace("_", " ").strip().upper()


def _inventory_item(record: dict[str, Any], settings: NormalizerSettings) -> InventoryItem:
    unit_cost = _number(record, "unitCost")
    selling_price = _number(record, "sellingPrice")
    fixed_cost_pct = _supplied(record, "fixedCostPct")
    if fixed_cost_pct is None:
        fixed_cost_pct = settings.fixed_cost_pct
    fixed_cost = unit_cost * (fixed_cost_pct / 100)
    total_unit_cost = unit_cost + fixed_cost

    margin = _supplied(record, "margin")
    if margin is None:
        margin = margin_pct(selling_price, total_unit_cost)
    gross_profit = _supplied(record, "grossProfit")
    if gross_profit is None:
        gross_profit = selling_price - total_unit_cost
    net_cost = _supplied(record, "netCost")
    if net_cost is None:
        net_cost = unit_cost

    distributor_price = _supplied(record, "distributorPrice")
    if distributor_price is None:
        distributor_price = selling_price * settings.distributor_factor
    intermediate_price = _supplied(record, "intermediatePrice")
    if intermediate_price is None:
        intermediate_price = selling_price * settings.intermediate_factor

    available_qty = _quantity(record, "availableQty")
    return InventoryItem(
        code=_text(record, "code"),
        description=_text(record, "description"),
        category=_text(record, "category"),
        unit_cost=unit_cost,
        fixed_cost_pct=fixed_cost_pct,
        fixed_cost=fixed_cost,
        total_unit_cost=total_unit_cost,
        selling_price=selling_price,
        distributor_price=distributor_price,
        distributor_margin=margin_pct(distributor_price, total_unit_cost),
        intermediate_price=intermediate_price,
        intermediate_margin=margin_pct(intermediate_price, total_unit_cost),
        margin=margin,
        gross_profit=gross_profit,
        net_cost=net_cost,
        available_qty=available_qty,
        in_transit_qty=_quantity(record, "inTransitQty"),
        warehouse_qty=available_qty if record.get("warehouseQty") is None else _quantity(record, "warehouseQty"),
        pre_sale_qty=_quantity(record, "preSaleQty"),
        sold_qty=_quantity(record, "soldQty"),
        route_qty=_quantity(record, "routeQty"),
        route_pct=_quantity(record, "routePct"),
        is_investment_recovered=_flag(record, "isInvestmentRecovered"),
    )


def normalize_inventory(
    records: Sequence[dict[str, Any]],
    settings: NormalizerSettings | None = None,
) -> list[InventoryItem]:
    settings = settings or NormalizerSettings()
    return [_inventory_item(r, settings) for r in records]


def normalize_catalog(records: Sequence[dict[str, Any]], file_name: str) -> list[CatalogItem]:
    """Normalize catalog rows; a missing category falls back to the file name."""
    file_category = category_from_file_name(file_name)
    items = []
    for r in records:
        category = _text(r, "category")
        items.append(
            CatalogItem(
                code=_text(r, "code"),
                description=_text(r, "description"),
                category=category or file_category,
            )
        )
    return items


def _project_item(record: dict[str, Any]) -> ProjectItem:
    quantity = _number(record, "quantity")
    unit_cost = _number(record, "unitCost")
    selling_price = _number(record, "sellingPrice")

    total_cost = _supplied(record, "totalCost")
    if total_cost is None:
        total_cost = quantity * unit_cost
    total_price = _supplied(record, "totalPrice")
    if total_price is None:
        total_price = quantity * selling_price
    profit = _supplied(record, "profit")
    if profit is None:
        profit = total_price - total_cost

    return ProjectItem(
        code=_text(record, "code"),
        description=_text(record, "description"),
        quantity=quantity,
        unit_cost=unit_cost,
        selling_price=selling_price,
        total_cost=total_cost,
        total_price=total_price,
        profit=profit,
    )


def normalize_project(records: Sequence[dict[str, Any]], file_name: str) -> ProjectImport:
    """Normalize project rows and aggregate the batch metadata.

    The project name is the file name without its extension; the client name
    is taken from the first row that supplies one.
    """
    items = [_project_item(r) for r in records]
    client_name = None
    for r in records:
        name = _text(r, "clientName")
        if name:
            client_name = name
            break
    return ProjectImport(
        project_name=PurePath(file_name).stem,
        client_name=client_name,
        items=items,
        total_cost=sum(i.total_cost for i in items),
        total_selling_price=sum(i.total_price for i in items),
        total_profit=sum(i.profit for i in items),
    )
