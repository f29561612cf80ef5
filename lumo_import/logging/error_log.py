from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Error log buffering.

Records are kept in memory during a batch run and written once, as JSON
Lines, to ``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC). The file is only created
when there is something to write.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "SCHEMA_PATH",
    "records_from_messages",
]

LOGS_DIR = Path("./logs")
SCHEMA_PATH = Path(__file__).parent / "error_log_schema.json"
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

_ROW_RE = re.compile(r"^Row (\d+): ")


def records_from_messages(file: str, sheet: str, error_type: str, messages: list[str]) -> list[ErrorRecord]:
    """Build records from pipeline messages, lifting ``Row n:`` into ``row``."""
    records = []
    for msg in messages:
        m = _ROW_RE.match(msg)
        row = int(m.group(1)) if m else -1
        records.append(ErrorRecord.create(file, sheet, row, error_type, msg))
    return records


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    Serial use only (one batch run at a time).
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(timezone.utc).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def extend(self, records: list[ErrorRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file; returns its path (None if nothing written)."""
        if not self._records:
            return self._file_path
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
