"""
Family Chores Tracker — SQLite plumbing shared by every store.

All tables live in one database file so that cascades touching people,
tasks, completions and day summaries commit or roll back together.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

from src.ports.store_port import StorageError

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS people (
        id     INTEGER PRIMARY KEY AUTOINCREMENT,
        name   TEXT NOT NULL,
        role   TEXT NOT NULL,
        theme  TEXT NOT NULL DEFAULT 'default'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS global_tasks (
        id     INTEGER PRIMARY KEY AUTOINCREMENT,
        title  TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS personal_tasks (
        id         INTEGER PRIMARY KEY AUTOINCREMENT,
        person_id  INTEGER NOT NULL,
        title      TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS task_completions (
        id         INTEGER PRIMARY KEY AUTOINCREMENT,
        person_id  INTEGER NOT NULL,
        task_id    INTEGER NOT NULL,
        task_kind  TEXT    NOT NULL CHECK (task_kind IN ('global', 'personal')),
        day        TEXT    NOT NULL,
        completed  INTEGER NOT NULL DEFAULT 0,
        UNIQUE (person_id, task_id, task_kind, day)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS day_summaries (
        person_id        INTEGER NOT NULL,
        day              TEXT    NOT NULL,
        completed_count  INTEGER NOT NULL DEFAULT 0,
        total_count      INTEGER NOT NULL DEFAULT 0,
        is_level2        INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (person_id, day)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_personal_tasks_person ON personal_tasks (person_id)",
    "CREATE INDEX IF NOT EXISTS idx_completions_task ON task_completions (task_id, task_kind)",
)


def as_day(value: date) -> date:
    """Reduce a datetime to its calendar day; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def to_iso(day: date) -> str:
    return as_day(day).isoformat()


def from_iso(value: str) -> date:
    return date.fromisoformat(value)


class SQLiteStore:
    """Base class: owns the database path, schema and connections."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode: transactions are opened explicitly in _transaction()
        conn = sqlite3.connect(self._db_path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create every table if it doesn't exist."""
        with self._transaction() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
        logger.debug("Chore tables initialized at %s", self._db_path)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block inside one write transaction.

        BEGIN IMMEDIATE takes the write lock up front, so a read-modify-write
        on day_summaries cannot interleave with another writer.
        """
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            logger.error("Cannot open database %s: %s", self._db_path, exc)
            raise StorageError(f"Failed to open database: {exc}") from exc
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error("Storage transaction failed: %s", exc)
            raise StorageError(f"Storage operation failed: {exc}") from exc
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    @contextmanager
    def _reader(self) -> Iterator[sqlite3.Connection]:
        """Open a connection for reads, wrapping driver errors."""
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            logger.error("Cannot open database %s: %s", self._db_path, exc)
            raise StorageError(f"Failed to open database: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            logger.error("Storage read failed: %s", exc)
            raise StorageError(f"Storage read failed: {exc}") from exc
        finally:
            conn.close()
