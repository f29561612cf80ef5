from __future__ import annotations

from typing import Any

from ..models.cell import Null
from .reader import RawGrid, detect_headers

"""Row materializer: RawGrid + HeaderMapping -> RawRecord list.

- rows made only of empty cells are dropped silently
- rows shorter than the header row read the missing cells as None
- numeric-looking text was already turned into numbers by the cell coercion,
  so values here are plain ``None | str | float``
"""

__all__ = [
    "RawRecord",
    "materialize_rows",
]

RawRecord = dict[str, Any]


def materialize_rows(
    grid: RawGrid,
    mapping: dict[str, str],
    header_row: int = 0,
) -> list[RawRecord]:
    """Turn every non-empty data row below ``header_row`` into a field -> value dict.

    Header cells that are empty produce no field. If two headers map to the
    same canonical field the right-most column wins.
    """
    headers = detect_headers(grid, header_row)
    if not headers:
        return []
    records: list[RawRecord] = []
    for index in range(header_row + 1, len(grid)):
        cells = grid.row(index, width=len(headers))
        if all(isinstance(c, Null) for c in cells):
            continue
        record: RawRecord = {}
        for col, header in enumerate(headers):
            if not header:
                continue
            field = mapping.get(header, header)
            record[field] = cells[col].to_python()
        records.append(record)
    return records
