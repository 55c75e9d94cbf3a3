"""
SQLite repository backend — embedded file-backed persistence.

Each collection is one table holding the record JSON:

    <collection>: id TEXT PRIMARY KEY, data TEXT NOT NULL

Equality filters compile to ``json_extract(data, '$.<field>') = ?``.
WAL mode and a busy timeout follow the other SQLite stores in this repo.
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Type

from .base import Repository, T

logger = logging.getLogger(__name__)


class SQLiteRepository(Repository[T]):
    """One collection stored as JSON documents in a SQLite table."""

    def __init__(self, name: str, model: Type[T], db_path: str):
        super().__init__(name, model)
        if not name.isidentifier():
            raise ValueError(f"Invalid collection name: {name!r}")
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=10)
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=10000")
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.name} (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL
                )
            """)

    def _where(self, filters: dict[str, Any]) -> tuple[str, list[Any]]:
        filters = self._check_filters(filters)
        if not filters:
            return "", []
        clauses, params = [], []
        for key, value in filters.items():
            if value is None:
                clauses.append(f"json_extract(data, '$.{key}') IS NULL")
            else:
                clauses.append(f"json_extract(data, '$.{key}') = ?")
                params.append(value)
        return " WHERE " + " AND ".join(clauses), params

    def _load(self, data: str) -> T:
        return self.model.model_validate(json.loads(data))

    def add(self, record: T) -> T:
        try:
            with self._connect() as conn:
                conn.execute(
                    f"INSERT INTO {self.name} (id, data) VALUES (?, ?)",
                    (record.id, record.model_dump_json()),
                )
        except sqlite3.IntegrityError:
            raise ValueError(f"{self.name}: record {record.id} already exists")
        return record

    def get(self, record_id: str) -> Optional[T]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT data FROM {self.name} WHERE id = ?", (record_id,)
            ).fetchone()
        return self._load(row[0]) if row else None

    def update(self, record: T) -> T:
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE {self.name} SET data = ? WHERE id = ?",
                (record.model_dump_json(), record.id),
            )
            if cursor.rowcount == 0:
                raise KeyError(f"{self.name}: record {record.id} not found")
        return record

    def delete(self, record_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(f"DELETE FROM {self.name} WHERE id = ?", (record_id,))
            return cursor.rowcount > 0

    def find(self, **filters: Any) -> list[T]:
        where, params = self._where(filters)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT data FROM {self.name}{where} ORDER BY rowid", params
            ).fetchall()
        return [self._load(row[0]) for row in rows]

    def count(self, **filters: Any) -> int:
        where, params = self._where(filters)
        with self._connect() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {self.name}{where}", params).fetchone()[0]

    def delete_where(self, **filters: Any) -> int:
        where, params = self._where(filters)
        with self._connect() as conn:
            cursor = conn.execute(f"DELETE FROM {self.name}{where}", params)
            removed = cursor.rowcount
        if removed:
            logger.debug(f"{self.name}: deleted {removed} record(s)")
        return removed

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute(f"DELETE FROM {self.name}")
