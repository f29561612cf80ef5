from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field

from .import_type import ImportType

"""Config dataclasses for the Lumo spreadsheet importer.

Plain frozen values built by ``lumo_import.config.loader``; nothing here reads
files or the environment.
"""

__all__ = [
    "DatabaseConfig",
    "NormalizerSettings",
    "ImportRule",
    "ImportConfig",
]


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class NormalizerSettings:
    """Pricing defaults applied by the normalizer (percentages on 0-100 scale)."""
    fixed_cost_pct: float = 2.0
    distributor_factor: float = 0.75  # distributorPrice = sellingPrice * factor
    intermediate_factor: float = 0.85  # intermediatePrice = sellingPrice * factor
    default_project_category: str = "GENERAL"


@dataclass(frozen=True)
class ImportRule:
    """Associates file names (glob) with an import type for batch runs."""
    pattern: str
    import_type: ImportType
    sheet: str | None = None

    def matches(self, file_name: str) -> bool:
        return fnmatch.fnmatch(file_name.lower(), self.pattern.lower())


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for batch imports."""
    source_directory: str  # Directory to scan for spreadsheet files
    imports: list[ImportRule]  # First matching rule decides the import type
    pricing: NormalizerSettings = field(default_factory=NormalizerSettings)
    detect_title_row: bool = True
    header_patterns: dict[str, list[str]] | None = None  # extra synonyms per field
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    def rule_for(self, file_name: str) -> ImportRule | None:
        for rule in self.imports:
            if rule.matches(file_name):
                return rule
        return None
