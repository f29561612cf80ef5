from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Union

import numpy as np

"""Cell value model for spreadsheet grids.

A worksheet cell is one of three shapes: empty, text, or a number. Readers
produce raw Python / numpy values; ``coerce_cell`` turns each of them into a
tagged ``CellValue`` so later stages dispatch on the tag instead of guessing
the runtime type of whatever the spreadsheet engine returned.
"""

__all__ = [
    "CellValue",
    "Null",
    "NULL",
    "Text",
    "Number",
    "coerce_cell",
    "parse_number",
]

# Full-string numeric literal: optional sign, digits with optional fraction
# (or a bare fraction), optional exponent. Hex literals are handled apart.
_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_HEX_RE = re.compile(r"^0[xX][0-9a-fA-F]+$")


@dataclass(frozen=True)
class Null:
    """Empty cell (missing, blank string or NaN)."""

    def to_python(self) -> None:
        return None

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class Text:
    value: str

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class Number:
    value: float

    def to_python(self) -> float:
        return self.value


CellValue = Union[Null, Text, Number]

NULL = Null()


def parse_number(text: str) -> float | None:
    """Parse ``text`` as a number only if the *whole* string is numeric.

    Surrounding whitespace is ignored. Partial parses such as ``"12abc"``
    and the special words ``inf`` / ``nan`` are rejected (return ``None``).
    """
    stripped = text.strip()
    if not stripped:
        return None
    if _HEX_RE.match(stripped):
        return float(int(stripped, 16))
    if _DECIMAL_RE.match(stripped):
        return float(stripped)
    return None


def coerce_cell(raw: Any) -> CellValue:
    """Convert a raw cell coming out of the spreadsheet engine."""
    if raw is None:
        return NULL
    if isinstance(raw, (Null, Text, Number)):
        return raw
    if isinstance(raw, str):
        if raw.strip() == "":
            return NULL
        num = parse_number(raw)
        if num is not None:
            return Number(num)
        return Text(raw)
    if isinstance(raw, (bool, np.bool_)):
        return Number(float(raw))
    if isinstance(raw, (int, float, np.integer, np.floating)):
        val = float(raw)
        if math.isnan(val):
            return NULL
        return Number(val)
    # datetimes, Decimal etc. keep their textual form
    try:
        if raw != raw:  # pandas NaT / NA compare unequal to themselves
            return NULL
    except (TypeError, ValueError):
        pass
    return Text(str(raw))
