from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

from ..models.import_type import ImportType
from ..models.items import CatalogItem, InventoryItem, ProjectItem

"""Validator: per-row checks on normalized items.

Exhaustive: every row is checked and every violation reported, in row order.
Messages look like ``Row {n}: {reason}`` with ``n`` the 1-based position of
the item among the retained data rows (header row not counted).
"""

__all__ = [
    "validate_inventory",
    "validate_catalog",
    "validate_project",
    "validate_items",
]


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_inventory(items: Sequence[InventoryItem]) -> list[str]:
    errors: list[str] = []
    for n, item in enumerate(items, start=1):
        if not item.code:
            errors.append(f"Row {n}: Missing product code")
        if not item.description:
            errors.append(f"Row {n}: Missing product description")
        if not _finite(item.unit_cost):
            errors.append(f"Row {n}: Invalid unit cost")
        if not _finite(item.selling_price):
            errors.append(f"Row {n}: Invalid selling price")
        if not item.category:
            errors.append(f"Row {n}: Missing category")
    return errors


def validate_catalog(items: Sequence[CatalogItem]) -> list[str]:
    errors: list[str] = []
    for n, item in enumerate(items, start=1):
        if not item.code:
            errors.append(f"Row {n}: Missing product code")
        if not item.description:
            errors.append(f"Row {n}: Missing product description")
    return errors


def validate_project(items: Sequence[ProjectItem]) -> list[str]:
    errors: list[str] = []
    for n, item in enumerate(items, start=1):
        if not item.code:
            errors.append(f"Row {n}: Missing product code")
        if not item.description:
            errors.append(f"Row {n}: Missing product description")
        if not _finite(item.quantity) or item.quantity <= 0:
            errors.append(f"Row {n}: Invalid quantity")
        if not _finite(item.unit_cost):
            errors.append(f"Row {n}: Invalid unit cost")
        if not _finite(item.selling_price):
            errors.append(f"Row {n}: Invalid selling price")
    return errors


_VALIDATORS = {
    ImportType.INVENTORY: validate_inventory,
    ImportType.CATALOG: validate_catalog,
    ImportType.PROJECT: validate_project,
}


def validate_items(import_type: ImportType, items: Sequence[Any]) -> list[str]:
    return _VALIDATORS[import_type](items)
