"""Domain models for the Lumo spreadsheet importer.

Cell values, import types, normalized items, results and configuration.
Everything here is an immutable value; no module in this package does I/O.
"""

from .cell import NULL, CellValue, Null, Number, Text, coerce_cell
from .config_models import DatabaseConfig, ImportConfig, ImportRule, NormalizerSettings
from .import_result import ImportResult
from .import_type import ImportType
from .items import CatalogItem, InventoryItem, NormalizedItem, ProjectImport, ProjectItem

__all__ = [
    # Cell model
    "CellValue",
    "Null",
    "NULL",
    "Number",
    "Text",
    "coerce_cell",
    # Import types and results
    "ImportType",
    "ImportResult",
    "InventoryItem",
    "CatalogItem",
    "ProjectItem",
    "ProjectImport",
    "NormalizedItem",
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    "ImportRule",
    "NormalizerSettings",
]
