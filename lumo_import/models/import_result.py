from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .items import NormalizedItem, ProjectImport

"""ImportResult: terminal output of the import pipeline.

Either a clean item list (success) or a non-empty error list (failure),
never both.
"""

__all__ = [
    "ImportResult",
]


@dataclass(frozen=True)
class ImportResult:
    success: bool
    items: list[NormalizedItem] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    project: ProjectImport | None = None  # PROJECT imports only

    @staticmethod
    def ok(items: list[NormalizedItem], project: ProjectImport | None = None) -> ImportResult:
        return ImportResult(success=True, items=list(items), errors=[], project=project)

    @staticmethod
    def failure(errors: list[str]) -> ImportResult:
        if not errors:
            raise ValueError("failure result requires at least one error")
        return ImportResult(success=False, items=[], errors=list(errors), project=None)

    def to_dict(self) -> dict[str, Any]:
        """Render the discriminated wire shape.

        success: ``{"success": true, "data": [...]}`` (+ project metadata)
        failure: ``{"success": false, "errors": [...]}``
        """
        if not self.success:
            return {"success": False, "errors": list(self.errors)}
        out: dict[str, Any] = {
            "success": True,
            "data": [item.to_dict() for item in self.items],
        }
        if self.project is not None:
            out["projectName"] = self.project.project_name
            out["clientName"] = self.project.client_name
            out["totalCost"] = self.project.total_cost
            out["totalSellingPrice"] = self.project.total_selling_price
            out["totalProfit"] = self.project.total_profit
        return out
