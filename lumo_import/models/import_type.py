from __future__ import annotations

from enum import Enum

"""Import type enum: selects which normalizer / validator variant runs."""

__all__ = [
    "ImportType",
]


class ImportType(Enum):
    """Declared type of a spreadsheet import.

    - INVENTORY: priced stock items (costs, prices, quantities)
    - CATALOG: product catalog (code / description / category only)
    - PROJECT: client project bill of materials with line totals
    """
    INVENTORY = "INVENTORY"
    CATALOG = "CATALOG"
    PROJECT = "PROJECT"

    @classmethod
    def parse(cls, token: str | ImportType) -> ImportType:
        """Parse an import type token.

        Accepts the canonical names (any case) and the lowercase tokens used by
        the web upload form (``inventory``, ``catalog``, ``projects``).
        """
        if isinstance(token, ImportType):
            return token
        key = str(token).strip().upper()
        if key == "PROJECTS":
            key = "PROJECT"
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"unsupported import type: {token!r}") from None
