from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models.import_type import ImportType
from ..models.items import CatalogItem, InventoryItem, ProjectImport
from ..services.normalizer import margin_pct
from .record_store import RecordStore

"""Persist normalized items into a RecordStore.

This is the looser, per-item contract that sits behind the pipeline's
all-or-nothing validation gate: each item is created or updated on its own,
and a failing item is counted and reported without stopping the batch.

Natural keys:
- category: name (matched case-insensitively)
- product: code
- project: name; its line items are replaced on every import
"""

__all__ = [
    "PersistOutcome",
    "persist_items",
    "CATEGORY",
    "PRODUCT",
    "PROJECT",
    "PROJECT_PRODUCT",
]

logger = logging.getLogger(__name__)

CATEGORY = "category"
PRODUCT = "product"
PROJECT = "project"
PROJECT_PRODUCT = "project_product"


@dataclass(frozen=True)
class PersistOutcome:
    created: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "errors": list(self.errors),
        }


def _find_or_create_category(store: RecordStore, name: str, description: str | None = None) -> str:
    found = store.find_by_name(CATEGORY, name)
    if found is not None:
        logger.debug("category found name=%s", found[0])
        return found[0]
    logger.debug("category created name=%s", name)
    store.put(CATEGORY, name, {"name": name, "description": description or f"Categoría importada: {name}"})
    return name


def _persist_inventory(store: RecordStore, item: InventoryItem) -> bool:
    """Upsert one inventory product. Returns True when it was created."""
    category = _find_or_create_category(store, item.category)
    payload = item.to_dict()
    payload["category"] = category
    existing = store.get(PRODUCT, item.code)
    store.put(PRODUCT, item.code, payload)
    return existing is None


def _persist_catalog(store: RecordStore, item: CatalogItem) -> bool:
    category = _find_or_create_category(store, item.category)
    existing = store.get(PRODUCT, item.code)
    if existing is not None:
        # catalog rows only carry description and category
        existing.update(description=item.description, category=category)
        store.put(PRODUCT, item.code, existing)
        return False
    store.put(
        PRODUCT,
        item.code,
        {
            "code": item.code,
            "description": item.description,
            "category": category,
            "unitCost": 0.0,
            "margin": 0.0,
            "sellingPrice": 0.0,
            "grossProfit": 0.0,
            "availableQty": 0.0,
        },
    )
    return True


def _persist_project(store: RecordStore, project: ProjectImport, default_category: str) -> PersistOutcome:
    existing = store.get(PROJECT, project.project_name)
    payload = {
        "name": project.project_name,
        "clientName": project.client_name or (existing or {}).get("clientName"),
        "totalCost": project.total_cost,
        "totalSellingPrice": project.total_selling_price,
        "totalProfit": project.total_profit,
    }
    store.put(PROJECT, project.project_name, payload)
    removed = store.delete_prefix(PROJECT_PRODUCT, f"{project.project_name}/")
    logger.debug("project=%s replaced line items removed=%d", project.project_name, removed)

    created = updated = failed = 0
    errors: list[str] = []
    for n, item in enumerate(project.items, start=1):
        try:
            if store.get(PRODUCT, item.code) is None:
                category = _find_or_create_category(
                    store, default_category, "Categoría predeterminada para productos importados"
                )
                store.put(
                    PRODUCT,
                    item.code,
                    {
                        "code": item.code,
                        "description": item.description,
                        "category": category,
                        "unitCost": item.unit_cost,
                        "sellingPrice": item.selling_price,
                        "margin": margin_pct(item.selling_price, item.unit_cost),
                        "grossProfit": item.selling_price - item.unit_cost,
                        "availableQty": 0.0,
                    },
                )
                created += 1
            else:
                updated += 1
            line = item.to_dict()
            line["project"] = project.project_name
            store.put(PROJECT_PRODUCT, f"{project.project_name}/{n:05d}", line)
        except Exception as e:
            message = f"Error en producto {item.code}: {e}"
            logger.warning(message)
            failed += 1
            errors.append(message)
    return PersistOutcome(created=created, updated=updated, failed=failed, errors=errors)


def persist_items(
    store: RecordStore,
    import_type: ImportType,
    items: Sequence[Any],
    project: ProjectImport | None = None,
    default_category: str = "GENERAL",
) -> PersistOutcome:
    """Create or update every item; per-item failures are counted, not raised.

    For PROJECT imports ``project`` carries the items and batch totals;
    ``created`` / ``updated`` then count catalog products created on the fly
    versus reused.
    """
    if import_type is ImportType.PROJECT:
        if project is None or not project.project_name or not project.items:
            return PersistOutcome(failed=len(items), errors=["Invalid project data"])
        try:
            outcome = _persist_project(store, project, default_category)
        except Exception as e:
            message = f"Failed to process project import: {e}"
            logger.error(message)
            return PersistOutcome(failed=len(project.items), errors=[message])
        logger.info(
            "project=%s persisted created=%d updated=%d failed=%d",
            project.project_name, outcome.created, outcome.updated, outcome.failed,
        )
        return outcome

    created = updated = failed = 0
    errors: list[str] = []
    for item in items:
        try:
            if import_type is ImportType.INVENTORY:
                was_created = _persist_inventory(store, item)
            else:
                was_created = _persist_catalog(store, item)
        except Exception as e:
            message = f"Error en producto {item.code}: {e}"
            logger.warning(message)
            failed += 1
            errors.append(message)
            continue
        if was_created:
            created += 1
        else:
            updated += 1
    logger.info(
        "type=%s persisted created=%d updated=%d failed=%d",
        import_type.value, created, updated, failed,
    )
    return PersistOutcome(created=created, updated=updated, failed=failed, errors=errors)
