from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from lumo_import.db.persist import CATEGORY, PRODUCT, PROJECT, PROJECT_PRODUCT, persist_items
from lumo_import.db.record_store import InMemoryRecordStore, PostgresRecordStore, RecordStoreError
from lumo_import.models.import_type import ImportType
from lumo_import.models.items import CatalogItem, ProjectImport, ProjectItem
from lumo_import.services.normalizer import normalize_inventory


def _inventory(code="LUM-1", category="Luminarias", **extra):
    record = {"code": code, "description": "Bombillo", "category": category, "unitCost": 100.0, "sellingPrice": 180.0}
    record.update(extra)
    return normalize_inventory([record])[0]


def _project(name="Obra", items=None):
    items = items if items is not None else [
        ProjectItem("P1", "Panel", 3.0, 50.0, 90.0, 150.0, 270.0, 120.0),
        ProjectItem("P2", "Cable", 2.0, 5.0, 8.0, 10.0, 16.0, 6.0),
    ]
    return ProjectImport(name, "ACME", items, 160.0, 286.0, 126.0)


def test_inventory_created_then_updated():
    store = InMemoryRecordStore()
    first = persist_items(store, ImportType.INVENTORY, [_inventory()])
    assert (first.created, first.updated, first.failed) == (1, 0, 0)
    second = persist_items(store, ImportType.INVENTORY, [_inventory(availableQty=5.0)])
    assert (second.created, second.updated, second.failed) == (0, 1, 0)
    assert store.get(PRODUCT, "LUM-1")["availableQty"] == 5.0


def test_category_matched_case_insensitively():
    store = InMemoryRecordStore()
    persist_items(store, ImportType.INVENTORY, [_inventory(code="A", category="Luminarias")])
    persist_items(store, ImportType.INVENTORY, [_inventory(code="B", category="LUMINARIAS")])
    assert store.keys(CATEGORY) == ["Luminarias"]
    assert store.get(PRODUCT, "B")["category"] == "Luminarias"


def test_catalog_updates_only_description_and_category():
    store = InMemoryRecordStore()
    persist_items(store, ImportType.INVENTORY, [_inventory()])
    outcome = persist_items(store, ImportType.CATALOG, [CatalogItem("LUM-1", "Bombillo 9W", "Focos"), CatalogItem("N1", "Nuevo", "Focos")])
    assert (outcome.created, outcome.updated) == (1, 1)
    existing = store.get(PRODUCT, "LUM-1")
    assert existing["description"] == "Bombillo 9W"
    assert existing["category"] == "Focos"
    assert existing["sellingPrice"] == 180.0
    assert store.get(PRODUCT, "N1")["sellingPrice"] == 0.0


def test_project_creates_missing_products_under_default_category():
    store = InMemoryRecordStore()
    persist_items(store, ImportType.INVENTORY, [_inventory(code="P2")])
    project = _project()
    outcome = persist_items(store, ImportType.PROJECT, project.items, project=project)
    assert (outcome.created, outcome.updated, outcome.failed) == (1, 1, 0)
    created = store.get(PRODUCT, "P1")
    assert created["category"] == "GENERAL"
    assert created["margin"] == pytest.approx((90 - 50) / 90 * 100)
    assert store.get(PROJECT, "Obra")["totalCost"] == 160.0
    assert store.keys(PROJECT_PRODUCT) == ["Obra/00001", "Obra/00002"]


def test_project_reimport_replaces_line_items():
    store = InMemoryRecordStore()
    project = _project()
    persist_items(store, ImportType.PROJECT, project.items, project=project)
    smaller = _project(items=[ProjectItem("P9", "Tubo", 1.0, 1.0, 2.0, 1.0, 2.0, 1.0)])
    persist_items(store, ImportType.PROJECT, smaller.items, project=smaller)
    assert store.keys(PROJECT_PRODUCT) == ["Obra/00001"]
    assert store.get(PROJECT_PRODUCT, "Obra/00001")["code"] == "P9"


def test_project_without_metadata_is_invalid():
    outcome = persist_items(InMemoryRecordStore(), ImportType.PROJECT, [], project=None)
    assert outcome.errors == ["Invalid project data"]


def test_per_item_failure_is_counted_and_processing_continues():
    store = InMemoryRecordStore()
    original_put = store.put

    def flaky_put(kind, key, payload):
        if kind == PRODUCT and key == "BAD":
            raise RecordStoreError("disk full")
        original_put(kind, key, payload)

    store.put = flaky_put  # type: ignore[method-assign]
    outcome = persist_items(store, ImportType.INVENTORY, [_inventory(code="BAD"), _inventory(code="OK")])
    assert (outcome.created, outcome.failed) == (1, 1)
    assert outcome.errors == ["Error en producto BAD: disk full"]
    assert outcome.to_dict()["failed"] == 1


def test_in_memory_store_returns_copies():
    store = InMemoryRecordStore()
    store.put(PRODUCT, "A", {"x": 1})
    got = store.get(PRODUCT, "A")
    got["x"] = 2
    assert store.get(PRODUCT, "A") == {"x": 1}
    assert store.delete_prefix(PRODUCT, "A") == 1
    assert store.get(PRODUCT, "A") is None


def test_postgres_store_upsert_sql():
    cursor = MagicMock()
    store = PostgresRecordStore(cursor)
    store.put(PRODUCT, "A", {"code": "A"})
    sql, params = cursor.execute.call_args[0]
    assert "ON CONFLICT (kind, natural_key) DO UPDATE" in sql
    assert params[0] == PRODUCT
    assert params[1] == "A"


def test_postgres_store_get_and_find():
    cursor = MagicMock()
    cursor.fetchone.side_effect = [({"code": "A"},), ("Luminarias", {"name": "Luminarias"}), None]
    store = PostgresRecordStore(cursor)
    assert store.get(PRODUCT, "A") == {"code": "A"}
    assert store.find_by_name(CATEGORY, "luminarias") == ("Luminarias", {"name": "Luminarias"})
    assert store.get(PRODUCT, "missing") is None


def test_postgres_store_delete_prefix_escapes_like():
    cursor = MagicMock()
    cursor.rowcount = 3
    store = PostgresRecordStore(cursor)
    assert store.delete_prefix(PROJECT_PRODUCT, "Obra_1/") == 3
    _, params = cursor.execute.call_args[0]
    assert params == (PROJECT_PRODUCT, "Obra\\_1/%")


def test_postgres_store_wraps_driver_errors():
    cursor = MagicMock()
    cursor.execute.side_effect = Exception("relation does not exist")
    store = PostgresRecordStore(cursor)
    with pytest.raises(RecordStoreError, match="relation does not exist"):
        store.ensure_table()
