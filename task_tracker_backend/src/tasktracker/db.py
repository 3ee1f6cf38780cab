from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generator, List, Optional, Sequence, Tuple

from .context import RequestContext
from .errors import TaskNotFound, ValidationError
from .models import CreateParams, ListFilter, Task, TaskStatus, UpdateParams
from .repositories import Repository

logger = logging.getLogger(__name__)

# SQLite VM instructions between cancellation checks.
_PROGRESS_INTERVAL = 1000

_UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    status: str = "status"
    priority: str = "priority"
    due_at: str = "due_at"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()

_SELECT_SQL = (
    f"SELECT {_COLS.id}, {_COLS.title}, {_COLS.description}, {_COLS.status}, {_COLS.priority}, "
    f"{_COLS.due_at}, {_COLS.created_at}, {_COLS.updated_at} FROM {_COLS.table}"
)

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {_COLS.table} (
    {_COLS.id}          INTEGER PRIMARY KEY AUTOINCREMENT,
    {_COLS.title}       TEXT NOT NULL,
    {_COLS.description} TEXT NULL,
    {_COLS.status}      TEXT NOT NULL DEFAULT '{TaskStatus.NEW.value}',
    {_COLS.priority}    INTEGER NOT NULL DEFAULT 3,
    {_COLS.due_at}      TEXT NULL,
    {_COLS.created_at}  TEXT NOT NULL DEFAULT ({_UTC_NOW_SQL}),
    {_COLS.updated_at}  TEXT NOT NULL DEFAULT ({_UTC_NOW_SQL})
);

CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_status ON {_COLS.table}({_COLS.status});
CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_created_at ON {_COLS.table}({_COLS.created_at});

CREATE TRIGGER IF NOT EXISTS trg_{_COLS.table}_touch_updated_at
AFTER UPDATE ON {_COLS.table}
FOR EACH ROW WHEN NEW.{_COLS.updated_at} = OLD.{_COLS.updated_at}
BEGIN
    UPDATE {_COLS.table} SET {_COLS.updated_at} = {_UTC_NOW_SQL} WHERE {_COLS.id} = NEW.{_COLS.id};
END;
"""


def _to_utc(value: datetime) -> datetime:
    # Naive values are taken to already be UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_ts(text: Optional[str]) -> Optional[datetime]:
    if text is None:
        return None
    return _to_utc(datetime.fromisoformat(str(text).replace("Z", "+00:00")))


def _format_due_at(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    try:
        return _to_utc(value).isoformat()
    except (OverflowError, ValueError):
        raise ValidationError("due_at", "must be a valid timestamp") from None


class SQLiteRepository(Repository):
    """
    SQLite repository implementing the Repository interface.

    One connection per operation. Timestamps are stored as ISO-8601 UTC text
    and maintained by the store itself (column defaults and an update trigger).
    """

    def __init__(self, db_path: str, timeout: float = 5.0) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._timeout = timeout
        self._init_db()

    @contextmanager
    def _conn(self, ctx: Optional[RequestContext] = None) -> Generator[sqlite3.Connection, None, None]:
        ctx = ctx or RequestContext()
        ctx.raise_if_done()
        conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        # A non-zero return interrupts the running statement with OperationalError.
        conn.set_progress_handler(lambda: 1 if ctx.done() else 0, _PROGRESS_INTERVAL)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.executescript(SCHEMA_SQL)

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row[_COLS.id]),
            title=str(row[_COLS.title]),
            description=row[_COLS.description] if row[_COLS.description] is not None else "",
            status=TaskStatus(row[_COLS.status]),
            priority=int(row[_COLS.priority]),
            due_at=_parse_ts(row[_COLS.due_at]),
            created_at=_parse_ts(row[_COLS.created_at]),  # type: ignore[arg-type]
            updated_at=_parse_ts(row[_COLS.updated_at]),  # type: ignore[arg-type]
        )

    def _fetch(self, conn: sqlite3.Connection, task_id: int) -> Task:
        row = conn.execute(f"{_SELECT_SQL} WHERE {_COLS.id} = ?", (task_id,)).fetchone()
        if row is None:
            raise TaskNotFound(task_id)
        return self._row_to_task(row)

    def create(self, params: CreateParams, *, ctx: Optional[RequestContext] = None) -> Task:
        with self._conn(ctx) as conn:
            cur = conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.title}, {_COLS.description}, {_COLS.status},
                    {_COLS.priority}, {_COLS.due_at})
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    params.title,
                    params.description,
                    params.status.value,
                    params.priority,
                    _format_due_at(params.due_at),
                ),
            )
            new_id = int(cur.lastrowid)
            logger.debug("inserted task id=%s", new_id)
            return self._fetch(conn, new_id)

    def get_by_id(self, task_id: int, *, ctx: Optional[RequestContext] = None) -> Task:
        with self._conn(ctx) as conn:
            return self._fetch(conn, task_id)

    def list(self, task_filter: ListFilter, *, ctx: Optional[RequestContext] = None) -> List[Task]:
        predicates: List[Tuple[str, Sequence[Any]]] = []

        if task_filter.status is not None:
            predicates.append((f"{_COLS.status} = ?", (task_filter.status.value,)))

        if task_filter.query:
            like = f"%{task_filter.query}%"
            predicates.append(
                (f"({_COLS.title} LIKE ? OR {_COLS.description} LIKE ?)", (like, like))
            )

        where_sql = ""
        params: List[Any] = []
        if predicates:
            where_sql = "WHERE " + " AND ".join(clause for clause, _ in predicates)
            for _, values in predicates:
                params.extend(values)

        with self._conn(ctx) as conn:
            rows = conn.execute(
                f"""
                {_SELECT_SQL}
                {where_sql}
                ORDER BY {_COLS.created_at} DESC, {_COLS.id} DESC
                LIMIT ? OFFSET ?
                """,
                [*params, task_filter.limit, task_filter.offset],
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def update(
        self, task_id: int, params: UpdateParams, *, ctx: Optional[RequestContext] = None
    ) -> Task:
        assignments: List[Tuple[str, Any]] = []
        if params.title is not None:
            assignments.append((_COLS.title, params.title))
        if params.description is not None:
            assignments.append((_COLS.description, params.description))
        if params.status is not None:
            assignments.append((_COLS.status, params.status.value))
        if params.priority is not None:
            assignments.append((_COLS.priority, params.priority))
        if params.due_at is not None:
            assignments.append((_COLS.due_at, _format_due_at(params.due_at)))
        if params.clear_due_at:
            assignments.append((_COLS.due_at, None))

        if not assignments:
            raise ValidationError("body", "at least one field must be provided for update")

        set_sql = ", ".join(f"{column} = ?" for column, _ in assignments)
        values = [value for _, value in assignments]

        with self._conn(ctx) as conn:
            cur = conn.execute(
                f"UPDATE {_COLS.table} SET {set_sql} WHERE {_COLS.id} = ?",
                [*values, task_id],
            )
            if cur.rowcount == 0:
                raise TaskNotFound(task_id)
            return self._fetch(conn, task_id)

    def delete(self, task_id: int, *, ctx: Optional[RequestContext] = None) -> None:
        with self._conn(ctx) as conn:
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,))
            if cur.rowcount == 0:
                raise TaskNotFound(task_id)
