from __future__ import annotations

import io
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, Any, Union

import pandas as pd

from ..models.cell import NULL, CellValue, Null, coerce_cell

"""Sheet reader: spreadsheet bytes -> RawGrid.

The whole sheet is read without a header (``header=None``) so that header
detection stays in our hands. Each cell is coerced into a tagged CellValue.
Engine selection follows the file extension (openpyxl for .xlsx, xlrd for
.xls); without a name pandas sniffs the container itself.
"""

__all__ = [
    "ParseError",
    "RawGrid",
    "SheetLayout",
    "read_workbook",
    "detect_headers",
    "detect_layout",
]

Source = Union[bytes, bytearray, Path, str, IO[bytes]]

_ENGINES = {
    ".xlsx": "openpyxl",
    ".xlsm": "openpyxl",
    ".xls": "xlrd",
}


class ParseError(Exception):
    """Raised when the payload is not a readable spreadsheet or the sheet is missing."""


class SheetLayout(Enum):
    LEGEND = "legend"  # title / legend line above the header row
    SIMPLE = "simple"  # header row fully recognised by the pattern table
    GENERIC = "generic"

    @property
    def header_row(self) -> int:
        return 1 if self is SheetLayout.LEGEND else 0


@dataclass(frozen=True)
class RawGrid:
    """Rectangular-ish view of one worksheet.

    Rows may be ragged; ``cell`` reads missing trailing cells as Null.
    """
    sheet_name: str
    rows: list[list[CellValue]]

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def width(self) -> int:
        return max((len(r) for r in self.rows), default=0)

    def cell(self, row: int, col: int) -> CellValue:
        try:
            return self.rows[row][col]
        except IndexError:
            return NULL

    def row(self, index: int, width: int | None = None) -> list[CellValue]:
        values = list(self.rows[index]) if index < len(self.rows) else []
        if width is not None and len(values) < width:
            values.extend([NULL] * (width - len(values)))
        return values


def _engine_for(file_name: str | None) -> str | None:
    if not file_name:
        return None
    return _ENGINES.get(Path(file_name).suffix.lower())


def _trim_trailing_nulls(cells: list[CellValue]) -> list[CellValue]:
    end = len(cells)
    while end > 0 and isinstance(cells[end - 1], Null):
        end -= 1
    return cells[:end]


def _frame_to_rows(df: pd.DataFrame) -> list[list[CellValue]]:
    rows: list[list[CellValue]] = []
    for raw in df.itertuples(index=False, name=None):
        rows.append(_trim_trailing_nulls([coerce_cell(v) for v in raw]))
    # trailing fully-empty rows carry no information
    while rows and not rows[-1]:
        rows.pop()
    return rows


def read_workbook(
    source: Source,
    sheet_name: str | None = None,
    file_name: str | None = None,
) -> RawGrid:
    """Read one sheet of a workbook into a RawGrid.

    Parameters
    ----------
    source: bytes, binary stream or path of the workbook
    sheet_name: sheet to read (None: first sheet)
    file_name: original file name, only used to pick the parsing engine

    Raises
    ------
    ParseError: the payload is not a spreadsheet container, the workbook has no
        sheets, or ``sheet_name`` does not exist.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        file_name = file_name or path.name
        payload: Any = path
    elif isinstance(source, (bytes, bytearray)):
        payload = io.BytesIO(bytes(source))
    else:
        payload = source

    engine = _engine_for(file_name)
    try:
        xls = pd.ExcelFile(payload, engine=engine)
    except Exception as e:
        raise ParseError(f"Failed to read Excel file: {e}") from e

    with xls:
        names = [str(n) for n in xls.sheet_names]
        if not names:
            raise ParseError("Workbook contains no sheets")
        if sheet_name is None:
            target = xls.sheet_names[0]
        elif sheet_name in names:
            target = xls.sheet_names[names.index(sheet_name)]
        else:
            raise ParseError(f"Sheet {sheet_name} not found")
        try:
            # keep_default_na=False: literal "NA"/"N/A" cells stay text
            df = xls.parse(target, header=None, dtype=object, keep_default_na=False)
        except Exception as e:
            raise ParseError(f"Failed to read sheet {target}: {e}") from e

    return RawGrid(sheet_name=str(target), rows=_frame_to_rows(df))


def detect_headers(grid: RawGrid, header_row: int = 0) -> list[str]:
    """Return header labels (stringified, stripped; empty cells -> "")."""
    if header_row >= len(grid):
        return []
    headers: list[str] = []
    for cell in grid.rows[header_row]:
        if isinstance(cell, Null):
            headers.append("")
        elif isinstance(cell.value, float) and cell.value.is_integer():
            headers.append(str(int(cell.value)))
        else:
            headers.append(str(cell.value).strip())
    return headers


def _non_empty(cells: Sequence[CellValue]) -> int:
    return sum(1 for c in cells if not isinstance(c, Null))


def detect_layout(grid: RawGrid, is_known_header: Callable[[str], bool]) -> SheetLayout:
    """Best-effort guess of the sheet layout.

    The branches are tried in a fixed order and the first match wins:
    LEGEND (single unrecognised cell followed by a header row), SIMPLE (every
    header of row 1 is recognised), GENERIC.
    """
    headers = [h for h in detect_headers(grid, 0) if h]
    # a lone recognised header is a one-column sheet, not a title
    if (
        len(grid) >= 2
        and _non_empty(grid.rows[0]) == 1
        and _non_empty(grid.rows[1]) >= 2
        and not is_known_header(headers[0])
    ):
        return SheetLayout.LEGEND
    if headers and all(is_known_header(h) for h in headers):
        return SheetLayout.SIMPLE
    return SheetLayout.GENERIC
