"""SQLite persistence layer for Leave Pulse."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .errors import StorageError
from .models import Category, EventRecord, FLAG_FIELDS, UserInsight
from .queries import EventQuery

Connection = sqlite3.Connection
Row = sqlite3.Row

_CONTENT_COLUMNS = (
    "user",
    "original_text",
    "timestamp",
    "ts_epoch",
    "timestamp_day",
    "day",
    "leave_day",
    "start_time",
    "end_time",
    "reason",
) + FLAG_FIELDS


class Database:
    """Lightweight wrapper around SQLite operations on attendance events."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        try:
            conn = sqlite3.connect(self._path)
        except sqlite3.Error as exc:
            raise StorageError(f"cannot open database {self._path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Hold the database write lock for a read-then-write sequence.

        ``BEGIN IMMEDIATE`` takes the reserved lock up front, so a second
        writer waits instead of interleaving between our lookup and write.
        """

        try:
            conn = sqlite3.connect(self._path, isolation_level=None, timeout=30.0)
        except sqlite3.Error as exc:
            raise StorageError(f"cannot open database {self._path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()

    @contextmanager
    def _session(self, conn: Optional[Connection]) -> Iterator[Connection]:
        if conn is not None:
            yield conn
            return
        with self.connect() as own:
            yield own
            own.commit()

    def _initialize(self) -> None:
        flag_columns = ",\n".join(
            f"                    {name} INTEGER NOT NULL DEFAULT 0" for name in FLAG_FIELDS
        )
        with self.connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    user TEXT NOT NULL,
                    original_text TEXT NOT NULL DEFAULT '',
                    timestamp TEXT NOT NULL,
                    ts_epoch REAL NOT NULL,
                    timestamp_day TEXT NOT NULL,
                    day TEXT NOT NULL,
                    leave_day TEXT,
                    start_time TEXT,
                    end_time TEXT,
                    reason TEXT,
{flag_columns},
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_events_user_day ON events (user_id, day)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_events_timestamp_day ON events (timestamp_day)")
            conn.commit()

    # region Point lookups and writes
    def find_event_for_day(
        self, user_id: str, day: date, *, conn: Optional[Connection] = None
    ) -> Optional[EventRecord]:
        with self._session(conn) as session:
            cursor = session.execute(
                "SELECT * FROM events WHERE user_id = ? AND day = ? ORDER BY id DESC LIMIT 1",
                (user_id, day.isoformat()),
            )
            row = cursor.fetchone()
            return row_to_record(row) if row else None

    def find_latest_event_for_user(
        self, user_id: str, *, conn: Optional[Connection] = None
    ) -> Optional[EventRecord]:
        with self._session(conn) as session:
            cursor = session.execute(
                "SELECT * FROM events WHERE user_id = ? ORDER BY ts_epoch DESC, id DESC LIMIT 1",
                (user_id,),
            )
            row = cursor.fetchone()
            return row_to_record(row) if row else None

    def insert_event(self, record: EventRecord, *, conn: Optional[Connection] = None) -> EventRecord:
        now = _now()
        values = record_to_values(record)
        values.update(user_id=record.user_id, created_at=now.isoformat(), updated_at=now.isoformat())
        columns = ", ".join(values)
        placeholders = ", ".join(f":{name}" for name in values)
        with self._session(conn) as session:
            cursor = session.execute(
                f"INSERT INTO events ({columns}) VALUES ({placeholders})",
                values,
            )
            event_id = cursor.lastrowid
        return replace(record, id=event_id, created_at=now, updated_at=now)

    def update_event(
        self, event_id: int, record: EventRecord, *, conn: Optional[Connection] = None
    ) -> EventRecord:
        """Overwrite every content field of an existing event."""

        now = _now()
        values = record_to_values(record)
        values.update(updated_at=now.isoformat(), id=event_id)
        assignments = ", ".join(f"{name} = :{name}" for name in (*_CONTENT_COLUMNS, "updated_at"))
        with self._session(conn) as session:
            cursor = session.execute(f"UPDATE events SET {assignments} WHERE id = :id", values)
            if cursor.rowcount != 1:
                raise StorageError(f"event {event_id} does not exist")
            row = session.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
        return row_to_record(row)

    # endregion

    # region Filtered reads
    def fetch_events(self, query: EventQuery) -> List[EventRecord]:
        where, params = build_where(query)
        with self.connect() as conn:
            cursor = conn.execute(
                f"SELECT * FROM events WHERE {where} ORDER BY ts_epoch, id",
                params,
            )
            return [row_to_record(row) for row in cursor.fetchall()]

    def count_events(self, query: EventQuery) -> int:
        where, params = build_where(query)
        with self.connect() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS total FROM events WHERE {where}", params).fetchone()
            return row["total"] if row else 0

    def count_by_day(self, query: EventQuery) -> List[Tuple[date, Category, int]]:
        """Count matching events per (timestamp day, category) bucket."""

        where, params = build_where(query)
        selects = []
        for category in query.categories:
            selects.append(
                f"""
                SELECT timestamp_day AS bucket, '{category.value}' AS category, COUNT(*) AS total
                FROM events
                WHERE {where} AND {category.flag} = 1
                GROUP BY timestamp_day
                """
            )
        if not selects:
            return []
        sql = " UNION ALL ".join(selects) + " ORDER BY bucket"
        with self.connect() as conn:
            cursor = conn.execute(sql, params * len(selects))
            return [
                (date.fromisoformat(row["bucket"]), Category(row["category"]), row["total"])
                for row in cursor.fetchall()
            ]

    def summarize_by_user(self, query: EventQuery) -> List[UserInsight]:
        where, params = build_where(query)
        with self.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT user_id,
                       MAX(user) AS user_name,
                       COUNT(*) AS total,
                       SUM(is_onleave) AS leaves,
                       SUM(is_working_from_home) AS wfh,
                       SUM(is_running_late) AS late,
                       SUM(is_leaving_early) AS early
                FROM events
                WHERE {where}
                GROUP BY user_id
                ORDER BY total DESC, user_id ASC
                """,
                params,
            )
            return [
                UserInsight(
                    user_id=row["user_id"],
                    user_name=row["user_name"],
                    total_events=row["total"] or 0,
                    leave_count=row["leaves"] or 0,
                    wfh_count=row["wfh"] or 0,
                    late_count=row["late"] or 0,
                    early_count=row["early"] or 0,
                )
                for row in cursor.fetchall()
            ]

    # endregion


def build_where(query: EventQuery) -> Tuple[str, List[Any]]:
    """Translate an :class:`EventQuery` into a SQL predicate and parameters."""

    clauses: List[str] = []
    params: List[Any] = []
    column = query.date_field.value
    if query.user_id is not None:
        clauses.append("user_id = ?")
        params.append(query.user_id)
    if query.start is not None:
        clauses.append(f"{column} >= ?")
        params.append(query.start.isoformat())
    if query.end is not None:
        clauses.append(f"{column} <= ?")
        params.append(query.end.isoformat())
    if query.month is not None:
        clauses.append(f"substr({column}, 6, 2) = ?")
        params.append(f"{query.month:02d}")
    if query.year is not None:
        clauses.append(f"substr({column}, 1, 4) = ?")
        params.append(f"{query.year:04d}")
    if query.categories:
        clauses.append("(" + " OR ".join(f"{c.flag} = 1" for c in query.categories) + ")")
    return (" AND ".join(clauses) or "1 = 1"), params


def record_to_values(record: EventRecord) -> Dict[str, Any]:
    return {
        "user": record.user,
        "original_text": record.original_text,
        "timestamp": record.timestamp.isoformat(),
        "ts_epoch": record.timestamp.timestamp(),
        "timestamp_day": record.timestamp_day.isoformat(),
        "day": record.day.isoformat(),
        "leave_day": record.leave_day.isoformat() if record.leave_day else None,
        "start_time": record.start_time.isoformat() if record.start_time else None,
        "end_time": record.end_time.isoformat() if record.end_time else None,
        "reason": record.reason,
        **{name: int(bool(getattr(record, name))) for name in FLAG_FIELDS},
    }


def row_to_record(row: Row) -> EventRecord:
    return EventRecord(
        id=row["id"],
        user_id=row["user_id"],
        user=row["user"],
        original_text=row["original_text"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
        leave_day=date.fromisoformat(row["leave_day"]) if row["leave_day"] else None,
        start_time=datetime.fromisoformat(row["start_time"]) if row["start_time"] else None,
        end_time=datetime.fromisoformat(row["end_time"]) if row["end_time"] else None,
        reason=row["reason"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
        **{name: bool(row[name]) for name in FLAG_FIELDS},
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["Database", "build_where", "record_to_values", "row_to_record"]
