from __future__ import annotations

from typing import Any, Protocol

"""Key-value record store used as the persistence collaborator.

Records are JSON payloads addressed by ``(kind, natural_key)``. Two
implementations:

- InMemoryRecordStore: mock mode / tests
- PostgresRecordStore: one generic ``lumo_records`` table, upsert by key,
  driven through a psycopg2 cursor supplied by the caller (the caller owns
  the connection and the transaction boundary)
"""

try:  # pragma: no cover - optional until psycopg2 present at runtime
    import psycopg2
    from psycopg2.extras import Json
except Exception:  # pragma: no cover
    psycopg2 = None  # type: ignore
    Json = None  # type: ignore

__all__ = [
    "RecordStore",
    "RecordStoreError",
    "InMemoryRecordStore",
    "PostgresRecordStore",
]

TABLE = "lumo_records"

CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    kind TEXT NOT NULL,
    natural_key TEXT NOT NULL,
    payload JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    PRIMARY KEY (kind, natural_key)
)
"""


class RecordStoreError(Exception):
    pass


class RecordStore(Protocol):
    def get(self, kind: str, key: str) -> dict[str, Any] | None: ...

    def find_by_name(self, kind: str, name: str) -> tuple[str, dict[str, Any]] | None: ...

    def put(self, kind: str, key: str, payload: dict[str, Any]) -> None: ...

    def delete_prefix(self, kind: str, prefix: str) -> int: ...


class InMemoryRecordStore:
    """Dict-backed store. Not thread safe (one import at a time)."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], dict[str, Any]] = {}

    def get(self, kind: str, key: str) -> dict[str, Any] | None:
        payload = self._records.get((kind, key))
        return dict(payload) if payload is not None else None

    def find_by_name(self, kind: str, name: str) -> tuple[str, dict[str, Any]] | None:
        wanted = name.casefold()
        for (k, key), payload in self._records.items():
            if k == kind and key.casefold() == wanted:
                return key, dict(payload)
        return None

    def put(self, kind: str, key: str, payload: dict[str, Any]) -> None:
        self._records[(kind, key)] = dict(payload)

    def delete_prefix(self, kind: str, prefix: str) -> int:
        doomed = [rk for rk in self._records if rk[0] == kind and rk[1].startswith(prefix)]
        for rk in doomed:
            del self._records[rk]
        return len(doomed)

    def keys(self, kind: str) -> list[str]:
        return sorted(key for k, key in self._records if k == kind)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)


def _like_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresRecordStore:
    """psycopg2-backed store on a single generic table."""

    def __init__(self, cursor: Any) -> None:
        if psycopg2 is None or Json is None:
            raise RecordStoreError("psycopg2 not available")
        self.cursor = cursor

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> None:
        try:
            self.cursor.execute(sql, params)
        except Exception as e:
            raise RecordStoreError(str(e)) from e

    def ensure_table(self) -> None:
        self._execute(CREATE_TABLE_SQL)

    def get(self, kind: str, key: str) -> dict[str, Any] | None:
        self._execute(
            f"SELECT payload FROM {TABLE} WHERE kind = %s AND natural_key = %s",
            (kind, key),
        )
        row = self.cursor.fetchone()
        return dict(row[0]) if row else None

    def find_by_name(self, kind: str, name: str) -> tuple[str, dict[str, Any]] | None:
        self._execute(
            f"SELECT natural_key, payload FROM {TABLE} "
            "WHERE kind = %s AND lower(natural_key) = lower(%s) "
            "ORDER BY natural_key LIMIT 1",
            (kind, name),
        )
        row = self.cursor.fetchone()
        return (row[0], dict(row[1])) if row else None

    def put(self, kind: str, key: str, payload: dict[str, Any]) -> None:
        self._execute(
            f"INSERT INTO {TABLE} (kind, natural_key, payload) VALUES (%s, %s, %s) "
            "ON CONFLICT (kind, natural_key) DO UPDATE "
            "SET payload = EXCLUDED.payload, updated_at = now()",
            (kind, key, Json(payload)),
        )

    def delete_prefix(self, kind: str, prefix: str) -> int:
        self._execute(
            f"DELETE FROM {TABLE} WHERE kind = %s AND natural_key LIKE %s ESCAPE '\\'",
            (kind, _like_escape(prefix) + "%"),
        )
        return int(self.cursor.rowcount or 0)
