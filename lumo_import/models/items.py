from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Union

"""Normalized item models (one dataclass per import type).

Items are created once per data row by the normalizer and are immutable
afterwards. ``to_dict`` renders the camelCase wire shape used by the web
application and the JSON output of the CLI.
"""

__all__ = [
    "InventoryItem",
    "CatalogItem",
    "ProjectItem",
    "ProjectImport",
    "NormalizedItem",
]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class _WireMixin:
    def to_dict(self) -> dict[str, Any]:
        return {_camel(k): v for k, v in asdict(self).items()}  # type: ignore[call-overload]


@dataclass(frozen=True)
class InventoryItem(_WireMixin):
    """Priced stock item.

    All numeric fields are populated (zero defaults, never ``None``); empty
    strings are left for the validator to flag.
    """
    code: str
    description: str
    category: str
    unit_cost: float
    fixed_cost_pct: float
    fixed_cost: float
    total_unit_cost: float
    selling_price: float
    distributor_price: float
    distributor_margin: float
    intermediate_price: float
    intermediate_margin: float
    margin: float  # percent, 0-100 scale
    gross_profit: float
    net_cost: float
    available_qty: float = 0.0
    in_transit_qty: float = 0.0
    warehouse_qty: float = 0.0
    pre_sale_qty: float = 0.0
    sold_qty: float = 0.0
    route_qty: float = 0.0
    route_pct: float = 0.0
    is_investment_recovered: bool = False


@dataclass(frozen=True)
class CatalogItem(_WireMixin):
    code: str
    description: str
    category: str


@dataclass(frozen=True)
class ProjectItem(_WireMixin):
    """Project line item. Totals are either supplied by the sheet or derived."""
    code: str
    description: str
    quantity: float
    unit_cost: float
    selling_price: float
    total_cost: float
    total_price: float
    profit: float


@dataclass(frozen=True)
class ProjectImport(_WireMixin):
    """Batch-level metadata of a project import."""
    project_name: str
    client_name: str | None
    items: list[ProjectItem] = field(default_factory=list)
    total_cost: float = 0.0
    total_selling_price: float = 0.0
    total_profit: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectName": self.project_name,
            "clientName": self.client_name,
            "items": [item.to_dict() for item in self.items],
            "totalCost": self.total_cost,
            "totalSellingPrice": self.total_selling_price,
            "totalProfit": self.total_profit,
        }


NormalizedItem = Union[InventoryItem, CatalogItem, ProjectItem]
