from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager, suppress
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Any, Generator, List, Mapping, Optional, Tuple

from .exceptions import StoreError
from .models import TaskEntity
from .query import FieldEquals, SortKey, TaskQuery, TextContains
from .repositories import Repository, new_task_id
from .schemas import TaskCreate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    priority: str = "priority"
    category: str = "category"
    completed: str = "completed"
    due_date: str = "due_date"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()
_FIELDS = frozenset(
    {"title", "description", "priority", "category", "completed", "due_date", "created_at", "updated_at"}
)


def _column(field: str) -> str:
    if field not in _FIELDS:
        raise ValueError(f"Unknown task field: {field}")
    return getattr(_COLS, field)


def _to_db(value: Any) -> Any:
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, datetime):
        return value.isoformat(timespec="microseconds")
    if hasattr(value, "value"):  # enum members
        return value.value
    return value


def _py_lower(value: Optional[str]) -> Optional[str]:
    # SQLite's lower() only folds ASCII; keep matching identical to the memory store
    return value.lower() if value is not None else None


class SQLiteRepository(Repository):
    """
    SQLite store implementing the Repository interface.

    One connection is opened at construction and shared by all requests under
    a lock, so every statement sequence for a single task runs atomically.
    """

    def __init__(self, db_path: str) -> None:
        if db_path != ":memory:":
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._lock = RLock()
        self._db = sqlite3.connect(db_path, check_same_thread=False)
        self._db.row_factory = sqlite3.Row
        self._db.create_function("py_lower", 1, _py_lower, deterministic=True)
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        with self._lock:
            try:
                yield self._db
                self._db.commit()
            except sqlite3.Error as e:
                logger.exception("SQLite operation failed on %s", self._db_path)
                # The connection may already be closed
                with suppress(sqlite3.Error):
                    self._db.rollback()
                raise StoreError() from e

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.description} TEXT NULL,
                    {_COLS.priority} TEXT NOT NULL DEFAULT 'medium',
                    {_COLS.category} TEXT NOT NULL DEFAULT 'general',
                    {_COLS.completed} INTEGER NOT NULL DEFAULT 0,
                    {_COLS.due_date} TEXT NULL,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )
            for col in (_COLS.completed, _COLS.priority, _COLS.created_at):
                conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_{col} ON {_COLS.table}({col})")

    def close(self) -> None:
        with self._lock:
            self._db.close()

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        def parse_dt(s: Optional[str]) -> Optional[datetime]:
            if s is None:
                return None
            return datetime.fromisoformat(s)

        return {
            "id": str(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description],
            "priority": str(row[_COLS.priority]),
            "category": str(row[_COLS.category]),
            "completed": bool(row[_COLS.completed]),
            "due_date": parse_dt(row[_COLS.due_date]),
            "created_at": parse_dt(row[_COLS.created_at]),  # type: ignore
            "updated_at": parse_dt(row[_COLS.updated_at]),  # type: ignore
        }

    def _fetch(self, conn: sqlite3.Connection, task_id: str) -> Optional[TaskEntity]:
        row = conn.execute(f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,)).fetchone()
        return self._row_to_entity(row) if row else None

    def _now(self) -> str:
        return datetime.now().isoformat(timespec="microseconds")

    def create(self, data: TaskCreate) -> TaskEntity:
        now = self._now()
        task_id = new_task_id()
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.title}, {_COLS.description}, {_COLS.priority},
                    {_COLS.category}, {_COLS.completed}, {_COLS.due_date}, {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    data.title,
                    data.description,
                    _to_db(data.priority),
                    _to_db(data.category),
                    _to_db(data.completed),
                    _to_db(data.due_date),
                    now,
                    now,
                ),
            )
            created = self._fetch(conn, task_id)
            assert created is not None
            return created

    def get(self, task_id: str) -> Optional[TaskEntity]:
        with self._conn() as conn:
            return self._fetch(conn, task_id)

    def _set(self, task_id: str, assignments: List[str], params: List[Any]) -> Optional[TaskEntity]:
        # updated_at never moves backwards, even if the wall clock does
        assignments = [*assignments, f"{_COLS.updated_at} = MAX(?, {_COLS.updated_at})"]
        with self._conn() as conn:
            cur = conn.execute(
                f"UPDATE {_COLS.table} SET {', '.join(assignments)} WHERE {_COLS.id} = ?",
                [*params, self._now(), task_id],
            )
            if cur.rowcount == 0:
                return None
            return self._fetch(conn, task_id)

    def update(self, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        assignments = [f"{_column(field)} = ?" for field in changes]
        params = [_to_db(value) for value in changes.values()]
        return self._set(task_id, assignments, params)

    def toggle(self, task_id: str) -> Optional[TaskEntity]:
        return self._set(task_id, [f"{_COLS.completed} = 1 - {_COLS.completed}"], [])

    def delete(self, task_id: str) -> Optional[TaskEntity]:
        with self._conn() as conn:
            existing = self._fetch(conn, task_id)
            if existing is None:
                return None
            conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,))
            return existing

    def _where(self, query: TaskQuery) -> Tuple[str, List[Any]]:
        clauses = []
        params: List[Any] = []
        for clause in query.clauses:
            if isinstance(clause, FieldEquals):
                clauses.append(f"{_column(clause.field)} = ?")
                params.append(_to_db(clause.value))
            elif isinstance(clause, TextContains):
                # instr() matches the text literally, unlike LIKE wildcards
                parts = [f"instr(py_lower(COALESCE({_column(f)}, '')), ?) > 0" for f in clause.fields]
                clauses.append(f"({' OR '.join(parts)})")
                params.extend([clause.text.lower()] * len(clause.fields))
            else:
                raise TypeError(f"Unsupported clause: {clause!r}")
        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where_sql, params

    def _order(self, keys: Tuple[SortKey, ...]) -> Tuple[str, List[Any]]:
        terms = []
        params: List[Any] = []
        for key in keys:
            col = _column(key.field)
            if key.order:
                whens = " ".join("WHEN ? THEN ?" for _ in key.order)
                expr = f"CASE {col} {whens} END"
                for i, value in enumerate(key.order):
                    params.extend([value, i])
            else:
                expr = col
            terms.append(f"{col} IS NULL")
            terms.append(f"{expr} {'DESC' if key.descending else 'ASC'}")
        order_sql = f"ORDER BY {', '.join(terms)}" if terms else ""
        return order_sql, params

    def find(self, query: TaskQuery) -> List[TaskEntity]:
        where_sql, where_params = self._where(query)
        order_sql, order_params = self._order(query.sort)
        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                {where_sql}
                {order_sql}
                """,
                [*where_params, *order_params],
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def count(self, query: TaskQuery) -> int:
        where_sql, params = self._where(query)
        with self._conn() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS cnt FROM {_COLS.table} {where_sql}", params).fetchone()
            return int(row["cnt"]) if row else 0
