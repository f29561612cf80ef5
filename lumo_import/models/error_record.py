from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

"""ErrorRecord model for the JSON Lines error log.

One record per problem found during a batch run: a parse failure, a
validation message, or a persistence failure. ``row=-1`` marks a file-level
error where no single row is at fault.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: spreadsheet file name
        sheet: sheet name (``<FILE_LEVEL>`` when unknown)
        row: 1-based data row number, -1 for file-level errors
        error_type: classification in UPPER_SNAKE_CASE
        message: human readable description
    """
    timestamp: str
    file: str
    sheet: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # no extra keys: exactly the dataclass fields
        return json.dumps(asdict(self), ensure_ascii=False)
