import json
import re
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any

from clipkeep.config import DB_PATH
from clipkeep.errors import PatternError, StorageError
from clipkeep.models import ClipboardEntry, ContentType


SCHEMA = """
CREATE TABLE IF NOT EXISTS clipboard_entries (
    id             TEXT PRIMARY KEY,
    content_type   TEXT NOT NULL CHECK(content_type IN ('text', 'image', 'file')),
    text_content   TEXT NOT NULL,
    preview        TEXT NOT NULL,
    content_hash   TEXT NOT NULL,
    created_at     TEXT NOT NULL,
    last_accessed  TEXT NOT NULL,
    pinned         INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_created_at ON clipboard_entries(created_at);
CREATE INDEX IF NOT EXISTS idx_last_accessed ON clipboard_entries(last_accessed DESC);
CREATE INDEX IF NOT EXISTS idx_content_hash ON clipboard_entries(content_hash);
CREATE INDEX IF NOT EXISTS idx_content_type ON clipboard_entries(content_type);

CREATE TABLE IF NOT EXISTS settings (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

# Pinned entries first, then most recent. rowid keeps equal timestamps stable.
_ORDER_BY = {
    "accessed": "pinned DESC, last_accessed DESC, rowid DESC",
    "copied": "pinned DESC, created_at DESC, rowid DESC",
}


@lru_cache(maxsize=64)
def _compile_pattern(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def _regexp(pattern: str, value: str | None) -> bool:
    if value is None:
        return False
    return _compile_pattern(pattern).search(value) is not None


def _timestamp(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class StorageManager:
    """SQLite-backed clipboard history.

    One connection is shared by the polling and cleanup threads. Every access
    goes through a re-entrant lock, so writes are serialized and reads never
    observe a half-applied transaction.
    """

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        self._lock = threading.RLock()
        self._depth = 0
        try:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.create_function("REGEXP", 2, _regexp, deterministic=True)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
        except sqlite3.Error as exc:
            raise StorageError(f"cannot open history database {self._db_path}: {exc}") from exc
        self.init_db()

    def init_db(self) -> None:
        with self.transaction():
            self._conn.executescript(SCHEMA)

    @contextmanager
    def transaction(self) -> Iterator["StorageManager"]:
        """Group storage calls into one atomic unit.

        Nested transactions join the outermost one, which alone commits or
        rolls back.
        """
        with self._lock:
            outermost = self._depth == 0
            self._depth += 1
            try:
                yield self
                if outermost:
                    self._conn.commit()
            except BaseException as exc:
                if outermost:
                    self._conn.rollback()
                if isinstance(exc, sqlite3.Error):
                    raise StorageError(str(exc)) from exc
                raise
            finally:
                self._depth -= 1

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with self.transaction():
            return self._conn.execute(sql, params)

    def _fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(str(exc)) from exc

    def _fetchone(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        rows = self._fetchall(sql, params)
        return rows[0] if rows else None

    def add_entry(self, entry: ClipboardEntry) -> str:
        self._execute(
            """INSERT INTO clipboard_entries
               (id, content_type, text_content, preview, content_hash, created_at, last_accessed, pinned)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                entry.id,
                entry.content_type.value,
                entry.text_content,
                entry.preview,
                entry.content_hash,
                _timestamp(entry.created_at),
                _timestamp(entry.last_accessed),
                int(entry.pinned),
            ),
        )
        return entry.id

    def get_entry(self, entry_id: str) -> ClipboardEntry | None:
        row = self._fetchone("SELECT * FROM clipboard_entries WHERE id = ?", (entry_id,))
        return self._row_to_entry(row) if row else None

    def find_by_hash(self, content_hash: str) -> ClipboardEntry | None:
        row = self._fetchone(
            "SELECT * FROM clipboard_entries WHERE content_hash = ? ORDER BY created_at DESC, rowid DESC LIMIT 1",
            (content_hash,),
        )
        return self._row_to_entry(row) if row else None

    def update_last_accessed(self, entry_id: str, when: datetime | None = None) -> bool:
        when = when or datetime.now()
        cursor = self._execute(
            "UPDATE clipboard_entries SET last_accessed = ? WHERE id = ?",
            (_timestamp(when), entry_id),
        )
        return cursor.rowcount > 0

    def set_pinned(self, entry_id: str, pinned: bool) -> bool:
        cursor = self._execute(
            "UPDATE clipboard_entries SET pinned = ? WHERE id = ?",
            (int(pinned), entry_id),
        )
        return cursor.rowcount > 0

    def delete_entry(self, entry_id: str) -> bool:
        cursor = self._execute("DELETE FROM clipboard_entries WHERE id = ?", (entry_id,))
        return cursor.rowcount > 0

    def delete_older_than(self, cutoff: datetime, exclude_pinned: bool = True) -> int:
        sql = "DELETE FROM clipboard_entries WHERE created_at < ?"
        if exclude_pinned:
            sql += " AND pinned = 0"
        return self._execute(sql, (_timestamp(cutoff),)).rowcount

    def count_non_pinned(self) -> int:
        row = self._fetchone("SELECT COUNT(*) AS cnt FROM clipboard_entries WHERE pinned = 0")
        return row["cnt"]

    def delete_oldest_non_pinned(self, count: int) -> int:
        if count <= 0:
            return 0
        cursor = self._execute(
            """DELETE FROM clipboard_entries WHERE rowid IN (
                   SELECT rowid FROM clipboard_entries
                   WHERE pinned = 0
                   ORDER BY created_at ASC, rowid ASC
                   LIMIT ?
               )""",
            (count,),
        )
        return cursor.rowcount

    def list_by_recency(
        self,
        limit: int = 25,
        offset: int = 0,
        content_type: ContentType | None = None,
        sort_by: str = "accessed",
    ) -> list[ClipboardEntry]:
        where = ""
        params: tuple = ()
        if content_type is not None:
            where = "WHERE content_type = ?"
            params = (ContentType(content_type).value,)
        rows = self._fetchall(
            f"SELECT * FROM clipboard_entries {where} ORDER BY {self._order_by(sort_by)} LIMIT ? OFFSET ?",
            params + (limit, offset),
        )
        return [self._row_to_entry(r) for r in rows]

    def search_text(self, query: str, limit: int = 25, offset: int = 0, sort_by: str = "accessed") -> list[ClipboardEntry]:
        rows = self._fetchall(
            f"""SELECT * FROM clipboard_entries
                WHERE text_content LIKE ? ESCAPE '\\'
                ORDER BY {self._order_by(sort_by)}
                LIMIT ? OFFSET ?""",
            (f"%{_escape_like(query)}%", limit, offset),
        )
        return [self._row_to_entry(r) for r in rows]

    def search_pattern(self, pattern: str, limit: int = 25, offset: int = 0, sort_by: str = "accessed") -> list[ClipboardEntry]:
        try:
            _compile_pattern(pattern)
        except re.error as exc:
            raise PatternError(f"invalid search pattern {pattern!r}: {exc}") from exc
        rows = self._fetchall(
            f"""SELECT * FROM clipboard_entries
                WHERE text_content REGEXP ?
                ORDER BY {self._order_by(sort_by)}
                LIMIT ? OFFSET ?""",
            (pattern, limit, offset),
        )
        return [self._row_to_entry(r) for r in rows]

    def clear_all(self, preserve_pinned: bool = True) -> int:
        sql = "DELETE FROM clipboard_entries"
        if preserve_pinned:
            sql += " WHERE pinned = 0"
        return self._execute(sql).rowcount

    def clear_by_type(self, content_type: ContentType, preserve_pinned: bool = True) -> int:
        sql = "DELETE FROM clipboard_entries WHERE content_type = ?"
        if preserve_pinned:
            sql += " AND pinned = 0"
        return self._execute(sql, (ContentType(content_type).value,)).rowcount

    def count(self) -> int:
        row = self._fetchone("SELECT COUNT(*) AS cnt FROM clipboard_entries")
        return row["cnt"]

    def get_pinned(self) -> list[ClipboardEntry]:
        rows = self._fetchall(
            "SELECT * FROM clipboard_entries WHERE pinned = 1 ORDER BY created_at DESC, rowid DESC"
        )
        return [self._row_to_entry(r) for r in rows]

    def load_settings(self) -> dict[str, Any]:
        rows = self._fetchall("SELECT key, value FROM settings")
        return {row["key"]: json.loads(row["value"]) for row in rows}

    def save_settings(self, values: dict[str, Any]) -> None:
        with self.transaction():
            for key, value in values.items():
                self._conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, json.dumps(value)),
                )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @staticmethod
    def _order_by(sort_by: str) -> str:
        try:
            return _ORDER_BY[sort_by]
        except KeyError:
            raise ValueError(f"unknown sort order {sort_by!r}") from None

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> ClipboardEntry:
        return ClipboardEntry(
            id=row["id"],
            content_type=ContentType(row["content_type"]),
            text_content=row["text_content"],
            preview=row["preview"],
            content_hash=row["content_hash"],
            created_at=datetime.fromisoformat(row["created_at"]),
            last_accessed=datetime.fromisoformat(row["last_accessed"]),
            pinned=bool(row["pinned"]),
        )
