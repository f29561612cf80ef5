from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..excel.materializer import RawRecord, materialize_rows
from ..excel.reader import ParseError, RawGrid, SheetLayout, Source, detect_headers, detect_layout, read_workbook
from ..mapping.header_mapper import DEFAULT_TABLE, HeaderMapping, HeaderPatternTable, resolve_mapping
from ..models.config_models import NormalizerSettings
from ..models.import_result import ImportResult
from ..models.import_type import ImportType
from .normalizer import normalize_catalog, normalize_inventory, normalize_project
from .validator import validate_items

"""Import pipeline: Sheet Reader -> Header Mapper -> Row Materializer ->
Normalizer -> Validator -> ImportResult.

Synchronous and one-shot. Only a structurally unreadable file stops the run
early; data problems are collected by the validator and returned together.
The result is either a clean item list or an error list, never both.
"""

__all__ = [
    "PipelineOptions",
    "SheetPreview",
    "import_file",
    "preview_file",
]

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "import.xlsx"


@dataclass(frozen=True)
class PipelineOptions:
    settings: NormalizerSettings = field(default_factory=NormalizerSettings)
    patterns: HeaderPatternTable = field(default_factory=lambda: DEFAULT_TABLE)
    detect_title_row: bool = True


@dataclass(frozen=True)
class SheetPreview:
    """What the pipeline sees in a file before normalization (``--inspect``)."""
    sheet_name: str
    layout: SheetLayout
    headers: list[str]
    mapping: HeaderMapping
    records: list[RawRecord]


def _header_row(grid: RawGrid, import_type: ImportType, options: PipelineOptions) -> tuple[SheetLayout, int]:
    if not options.detect_title_row:
        return SheetLayout.GENERIC, 0
    # a header counts as known when the type's table maps it to a field
    mapped = resolve_mapping(detect_headers(grid, 0), import_type, table=options.patterns)
    layout = detect_layout(grid, lambda h: mapped.get(h, h) != h)
    return layout, layout.header_row


def _read(
    source: Source,
    import_type: ImportType,
    file_name: str,
    sheet_name: str | None,
    header_mapping: Mapping[str, str] | None,
    options: PipelineOptions,
) -> SheetPreview:
    grid = read_workbook(source, sheet_name=sheet_name, file_name=file_name)
    logger.debug("file=%s sheet=%s rows=%d", file_name, grid.sheet_name, len(grid))
    layout, header_row = _header_row(grid, import_type, options)
    headers = detect_headers(grid, header_row)
    mapping = resolve_mapping(headers, import_type, custom=header_mapping, table=options.patterns)
    records = materialize_rows(grid, mapping, header_row=header_row) if headers else []
    return SheetPreview(
        sheet_name=grid.sheet_name,
        layout=layout,
        headers=headers,
        mapping=mapping,
        records=records,
    )


def _file_name_of(source: Source, file_name: str | None) -> str:
    if file_name:
        return file_name
    if isinstance(source, (str, Path)):
        return Path(source).name
    name = getattr(source, "name", None)
    if name:
        return name
    logger.warning(
        "no file name for source; category and project name fall back to %s", DEFAULT_FILE_NAME
    )
    return DEFAULT_FILE_NAME


def preview_file(
    source: Source,
    import_type: ImportType | str,
    *,
    file_name: str | None = None,
    sheet_name: str | None = None,
    header_mapping: Mapping[str, str] | None = None,
    options: PipelineOptions | None = None,
) -> SheetPreview:
    """Run the read / map / materialize stages only. Raises ParseError."""
    return _read(
        source,
        ImportType.parse(import_type),
        Path(_file_name_of(source, file_name)).name,
        sheet_name,
        header_mapping,
        options or PipelineOptions(),
    )


def import_file(
    source: Source,
    import_type: ImportType | str,
    *,
    file_name: str | None = None,
    sheet_name: str | None = None,
    header_mapping: Mapping[str, str] | None = None,
    options: PipelineOptions | None = None,
) -> ImportResult:
    """Import one spreadsheet and return the normalized, validated items.

    Args:
        source: workbook bytes, binary stream or path
        import_type: INVENTORY | CATALOG | PROJECT (or the web form tokens)
        file_name: original file name (category / project name fallback)
        sheet_name: sheet to read (first sheet when omitted)
        header_mapping: custom raw header -> field mapping, used verbatim
        options: pricing defaults, pattern table, layout detection switch

    Returns:
        ImportResult. Unreadable files and validation problems are reported
        as a failure result; this function does not raise on them.
    """
    kind = ImportType.parse(import_type)
    options = options or PipelineOptions()
    name = Path(_file_name_of(source, file_name)).name
    logger.info("import start file=%s type=%s", name, kind.value)

    try:
        preview = _read(source, kind, name, sheet_name, header_mapping, options)
    except ParseError as e:
        logger.error("file=%s parse error: %s", name, e)
        return ImportResult.failure([str(e)])

    if not any(preview.headers):
        logger.warning("file=%s no headers found", name)
        return ImportResult.failure(["No headers found in the Excel file"])

    logger.debug("file=%s layout=%s mapping=%s", name, preview.layout.value, preview.mapping)
    records = preview.records

    project = None
    items: list[Any]
    if kind is ImportType.INVENTORY:
        items = normalize_inventory(records, options.settings)
    elif kind is ImportType.CATALOG:
        items = normalize_catalog(records, name)
    else:
        project = normalize_project(records, name)
        items = list(project.items)

    errors = validate_items(kind, items)
    if errors:
        logger.info("file=%s validation failed errors=%d", name, len(errors))
        return ImportResult.failure(errors)

    logger.info("import done file=%s type=%s items=%d", name, kind.value, len(items))
    return ImportResult.ok(items, project=project)
