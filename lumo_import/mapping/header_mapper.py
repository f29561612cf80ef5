from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from ..models.import_type import ImportType

"""Header mapper: human column labels (Spanish / English) -> canonical fields.

The pattern dictionary is an immutable ``HeaderPatternTable`` value. Callers
that need another locale or customer-specific synonyms build their own table
(``DEFAULT_TABLE.extended(...)``) and pass it in; nothing global is mutated.

Matching rules:
- headers are accent-folded (NFKD, combining marks dropped) before matching,
  patterns are case-insensitive
- table order decides ties: the first field whose pattern matches wins
- unmatched headers map to themselves
"""

__all__ = [
    "HeaderMapping",
    "HeaderPatternTable",
    "DEFAULT_FIELD_PATTERNS",
    "DEFAULT_TABLE",
    "FIELDS_BY_TYPE",
    "fold_header",
    "auto_map_headers",
    "resolve_mapping",
]

HeaderMapping = dict[str, str]

# Ordered: earlier fields take priority over later ones.
DEFAULT_FIELD_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("code", (r"^cod(e|igo)?$", r"^item\s*id$", r"^numero$", r"^sku$", r"^ref(erencia)?$")),
    ("description", (r"^desc(ripcion|ription)?$", r"^nombre$", r"^item\s*name$", r"^producto$")),
    ("unitCost", (r"^(unit|costo)\s*cost(o)?$", r"^precio\s*costo$", r"^cost(e|o)?$", r"^costo\s*unitario$")),
    ("fixedCostPct", (r"^%\s*costo\s*fijo$", r"^costo\s*fijo\s*%$", r"^fixed\s*cost\s*(pct|%)$")),
    ("margin", (r"^margen$", r"^margin$", r"^markup$")),
    ("sellingPrice", (r"^(precio|price)\s*(venta|sell|pvp)$", r"^pvp$", r"^venta$", r"^selling\s*price$")),
    ("distributorPrice", (r"^precio\s*distribuidor$", r"^distributor\s*price$")),
    ("intermediatePrice", (r"^precio\s*intermedio$", r"^intermediate\s*price$")),
    ("grossProfit", (r"^utilidad\s*bruta$", r"^gross\s*profit$", r"^ganancia$")),
    ("netCost", (r"^costo\s*neto$", r"^net\s*cost$")),
    ("availableQty", (r"^cantidad$", r"^qty$", r"^stock$", r"^inventory$", r"^disponible$")),
    ("inTransitQty", (r"^en\s*transito$", r"^in\s*transit$")),
    ("warehouseQty", (r"^(en\s*)?almacen$", r"^warehouse$")),
    ("preSaleQty", (r"^pre\s*-?\s*venta$", r"^pre\s*-?\s*sale$")),
    ("soldQty", (r"^vendid[oa]s?$", r"^sold$")),
    ("routeQty", (r"^(en\s*)?ruta$", r"^route$")),
    ("routePct", (r"^%\s*ruta$", r"^ruta\s*%$", r"^route\s*(pct|%)$")),
    ("isInvestmentRecovered", (r"^inversion\s*recuperada$", r"^investment\s*recovered$")),
    ("category", (r"^categoria$", r"^category$", r"^tipo$", r"^type$")),
    ("quantity", (r"^cantidad$", r"^qty$", r"^cant$")),
    ("totalCost", (r"^costo\s*total$", r"^total\s*cost$")),
    ("totalPrice", (r"^precio\s*total$", r"^total\s*price$", r"^total\s*venta$")),
    ("profit", (r"^ganancia$", r"^utilidad$", r"^profit$")),
    ("projectName", (r"^proyecto$", r"^project$", r"^nombre\s*proyecto$")),
    ("clientName", (r"^cliente$", r"^client$", r"^customer$")),
)

FIELDS_BY_TYPE: dict[ImportType, frozenset[str]] = {
    ImportType.INVENTORY: frozenset({
        "code", "description", "unitCost", "fixedCostPct", "margin", "sellingPrice",
        "distributorPrice", "intermediatePrice", "grossProfit", "netCost",
        "availableQty", "inTransitQty", "warehouseQty", "preSaleQty", "soldQty",
        "routeQty", "routePct", "isInvestmentRecovered", "category",
    }),
    ImportType.CATALOG: frozenset({"code", "description", "category"}),
    ImportType.PROJECT: frozenset({
        "code", "description", "unitCost", "sellingPrice", "quantity",
        "totalCost", "totalPrice", "profit", "projectName", "clientName",
    }),
}


def fold_header(header: str) -> str:
    """Accent-fold and trim a header for matching (``Categoría`` -> ``Categoria``)."""
    text = unicodedata.normalize("NFKD", str(header))
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return text.strip()


@dataclass(frozen=True)
class HeaderPatternTable:
    """Ordered, immutable mapping: canonical field -> match patterns."""
    entries: tuple[tuple[str, tuple[re.Pattern[str], ...]], ...]

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Iterable[str]]]) -> HeaderPatternTable:
        entries = []
        for field, patterns in pairs:
            compiled = tuple(re.compile(p, re.IGNORECASE) for p in patterns)
            entries.append((field, compiled))
        return cls(entries=tuple(entries))

    @property
    def fields(self) -> list[str]:
        return [f for f, _ in self.entries]

    def extended(self, extra: Mapping[str, Sequence[str]]) -> HeaderPatternTable:
        """Return a new table with ``extra`` patterns tried before the existing ones.

        Fields unknown to the table are appended at the end.
        """
        compiled_extra = {
            f: tuple(re.compile(p, re.IGNORECASE) for p in pats) for f, pats in extra.items()
        }
        entries = []
        for field, patterns in self.entries:
            entries.append((field, compiled_extra.pop(field, ()) + patterns))
        for field, patterns in compiled_extra.items():
            entries.append((field, patterns))
        return HeaderPatternTable(entries=tuple(entries))

    def restricted(self, allowed: Iterable[str]) -> HeaderPatternTable:
        keep = set(allowed)
        return HeaderPatternTable(entries=tuple(e for e in self.entries if e[0] in keep))

    def match(self, header: str) -> str | None:
        folded = fold_header(header)
        if not folded:
            return None
        for field, patterns in self.entries:
            if any(p.search(folded) for p in patterns):
                return field
        return None


DEFAULT_TABLE = HeaderPatternTable.from_pairs(DEFAULT_FIELD_PATTERNS)


def _table_for(import_type: ImportType, table: HeaderPatternTable | None) -> HeaderPatternTable:
    base = table if table is not None else DEFAULT_TABLE
    allowed = FIELDS_BY_TYPE[import_type]
    # fields added by the caller's own table are always allowed
    extra = set(base.fields) - set(DEFAULT_TABLE.fields)
    return base.restricted(allowed | extra)


def auto_map_headers(
    headers: Sequence[str],
    import_type: ImportType,
    table: HeaderPatternTable | None = None,
) -> HeaderMapping:
    """Map each raw header to a canonical field (identity when nothing matches)."""
    effective = _table_for(import_type, table)
    mapping: HeaderMapping = {}
    for header in headers:
        if header in mapping:
            continue
        field = effective.match(header)
        mapping[header] = field if field is not None else header
    return mapping


def resolve_mapping(
    headers: Sequence[str],
    import_type: ImportType,
    custom: Mapping[str, str] | None = None,
    table: HeaderPatternTable | None = None,
) -> HeaderMapping:
    """Return the mapping to use for one file.

    A caller-supplied ``custom`` mapping bypasses pattern matching entirely;
    headers it does not mention keep their own name.
    """
    if custom is not None:
        return {h: custom.get(h, h) for h in headers}
    return auto_map_headers(headers, import_type, table)
