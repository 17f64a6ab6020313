"""
Family Chores Tracker — Completion Ledger and Day Summary cache.

The ledger (task_completions) is the source of truth: one row per
(person, task, kind, day). Every write to it recomputes the matching
day_summaries row inside the same transaction, so the cache never
lags behind the ledger.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date

from src.data.base import SQLiteStore, as_day, from_iso, to_iso
from src.data.models import CompletionEntry, DaySummary, TaskKind
from src.ports.store_port import NotFoundError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Summary maintenance (called with an open transaction)
# ---------------------------------------------------------------------------


def is_level2(completed_count: int, total_count: int) -> bool:
    return total_count > 0 and completed_count == total_count


def recompute_day_summary(
    conn: sqlite3.Connection, person_id: int, day: date,
) -> DaySummary:
    """Rebuild one (person, day) summary from that day's ledger rows."""
    day = as_day(day)
    row = conn.execute(
        """
        SELECT COUNT(*) AS total, COALESCE(SUM(completed), 0) AS done
        FROM task_completions
        WHERE person_id = ? AND day = ?
        """,
        (person_id, to_iso(day)),
    ).fetchone()
    total, done = row["total"], row["done"]

    if total == 0:
        conn.execute(
            "DELETE FROM day_summaries WHERE person_id = ? AND day = ?",
            (person_id, to_iso(day)),
        )
        return DaySummary(person_id=person_id, day=day)

    level2 = is_level2(done, total)
    conn.execute(
        """
        INSERT INTO day_summaries
            (person_id, day, completed_count, total_count, is_level2)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT (person_id, day) DO UPDATE SET
            completed_count = excluded.completed_count,
            total_count     = excluded.total_count,
            is_level2       = excluded.is_level2
        """,
        (person_id, to_iso(day), done, total, int(level2)),
    )
    return DaySummary(
        person_id=person_id,
        day=day,
        completed_count=done,
        total_count=total,
        is_level2=level2,
    )


def retract_task_completions(
    conn: sqlite3.Connection,
    task_id: int,
    task_kind: TaskKind,
    person_id: int | None = None,
) -> int:
    """Remove a task's ledger rows and take them out of the day summaries.

    Each removed row lowers its day's total by one (and completed by one
    if it was done), then Level 2 is re-evaluated. Days left with no
    rows lose their summary. Returns the number of ledger rows removed.
    """
    where = "task_id = ? AND task_kind = ?"
    params: list = [task_id, TaskKind(task_kind).value]
    if person_id is not None:
        where += " AND person_id = ?"
        params.append(person_id)

    rows = conn.execute(
        f"SELECT person_id, day, completed FROM task_completions WHERE {where}",
        params,
    ).fetchall()

    for row in rows:
        conn.execute(
            """
            UPDATE day_summaries SET
                total_count     = MAX(total_count - 1, 0),
                completed_count = MAX(completed_count - ?, 0)
            WHERE person_id = ? AND day = ?
            """,
            (int(bool(row["completed"])), row["person_id"], row["day"]),
        )

    for person, day in {(r["person_id"], r["day"]) for r in rows}:
        conn.execute(
            """
            UPDATE day_summaries SET
                is_level2 = (total_count > 0 AND completed_count = total_count)
            WHERE person_id = ? AND day = ?
            """,
            (person, day),
        )
        conn.execute(
            "DELETE FROM day_summaries WHERE person_id = ? AND day = ? AND total_count <= 0",
            (person, day),
        )

    conn.execute(f"DELETE FROM task_completions WHERE {where}", params)
    return len(rows)


# ---------------------------------------------------------------------------
# Completion ledger
# ---------------------------------------------------------------------------


class CompletionDB(SQLiteStore):
    """SQLite-backed ledger of daily task completions."""

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> CompletionEntry:
        return CompletionEntry(
            id=row["id"],
            person_id=row["person_id"],
            task_id=row["task_id"],
            task_kind=TaskKind(row["task_kind"]),
            day=from_iso(row["day"]),
            completed=bool(row["completed"]),
        )

    @staticmethod
    def _check_task(
        conn: sqlite3.Connection, person_id: int, task_id: int, task_kind: TaskKind,
    ) -> None:
        if conn.execute("SELECT 1 FROM people WHERE id = ?", (person_id,)).fetchone() is None:
            raise NotFoundError(f"Person {person_id} not found")

        if task_kind is TaskKind.GLOBAL:
            found = conn.execute(
                "SELECT 1 FROM global_tasks WHERE id = ?", (task_id,),
            ).fetchone()
        else:
            found = conn.execute(
                "SELECT 1 FROM personal_tasks WHERE id = ? AND person_id = ?",
                (task_id, person_id),
            ).fetchone()
        if found is None:
            raise NotFoundError(
                f"{task_kind.value.capitalize()} task {task_id} not found for person {person_id}"
            )

    def upsert(
        self,
        person_id: int,
        task_id: int,
        task_kind: TaskKind,
        completed: bool,
        day: date | None = None,
    ) -> CompletionEntry:
        """Set a task's completion for a day (default today).

        A second call for the same (person, task, kind, day) overwrites the
        first. The day's summary is recomputed in the same transaction.
        """
        kind = TaskKind(task_kind)
        day = date.today() if day is None else as_day(day)

        with self._transaction() as conn:
            self._check_task(conn, person_id, task_id, kind)
            conn.execute(
                """
                INSERT INTO task_completions
                    (person_id, task_id, task_kind, day, completed)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (person_id, task_id, task_kind, day)
                    DO UPDATE SET completed = excluded.completed
                """,
                (person_id, task_id, kind.value, to_iso(day), int(completed)),
            )
            row = conn.execute(
                """
                SELECT * FROM task_completions
                WHERE person_id = ? AND task_id = ? AND task_kind = ? AND day = ?
                """,
                (person_id, task_id, kind.value, to_iso(day)),
            ).fetchone()
            summary = recompute_day_summary(conn, person_id, day)

        logger.info(
            "Person #%d %s task #%d set %s on %s (%d/%d done)",
            person_id, kind.value, task_id,
            "done" if completed else "not done", day.isoformat(),
            summary.completed_count, summary.total_count,
        )
        return self._row_to_entry(row)

    def list_for_person(
        self, person_id: int, day: date | None = None,
    ) -> list[CompletionEntry]:
        """All of a person's entries, or only those of one day."""
        query = "SELECT * FROM task_completions WHERE person_id = ?"
        params: list = [person_id]
        if day is not None:
            query += " AND day = ?"
            params.append(to_iso(day))
        query += " ORDER BY day, id"

        with self._reader() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_entry(r) for r in rows]

    def get_entry(
        self,
        person_id: int,
        task_id: int,
        task_kind: TaskKind,
        day: date | None = None,
    ) -> CompletionEntry | None:
        """Fetch one entry for a day (default today)."""
        day = date.today() if day is None else as_day(day)
        with self._reader() as conn:
            row = conn.execute(
                """
                SELECT * FROM task_completions
                WHERE person_id = ? AND task_id = ? AND task_kind = ? AND day = ?
                """,
                (person_id, task_id, TaskKind(task_kind).value, to_iso(day)),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_entry(row)


# ---------------------------------------------------------------------------
# Day summaries
# ---------------------------------------------------------------------------


class CalendarDB(SQLiteStore):
    """SQLite-backed cache of per-person daily summaries."""

    @staticmethod
    def _row_to_summary(row: sqlite3.Row) -> DaySummary:
        return DaySummary(
            person_id=row["person_id"],
            day=from_iso(row["day"]),
            completed_count=row["completed_count"],
            total_count=row["total_count"],
            is_level2=bool(row["is_level2"]),
        )

    def recompute_day(self, person_id: int, day: date) -> DaySummary:
        """Rebuild one day's summary from the ledger."""
        day = as_day(day)
        with self._transaction() as conn:
            summary = recompute_day_summary(conn, person_id, day)
        logger.debug(
            "Recomputed summary for person #%d on %s: %d/%d",
            person_id, day.isoformat(), summary.completed_count, summary.total_count,
        )
        return summary

    def get_summary(self, person_id: int, day: date) -> DaySummary | None:
        with self._reader() as conn:
            row = conn.execute(
                "SELECT * FROM day_summaries WHERE person_id = ? AND day = ?",
                (person_id, to_iso(day)),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_summary(row)

    def list_summaries(
        self, person_id: int, start: date, end: date,
    ) -> list[DaySummary]:
        """Summaries for start..end inclusive, oldest first."""
        with self._reader() as conn:
            rows = conn.execute(
                """
                SELECT * FROM day_summaries
                WHERE person_id = ? AND day >= ? AND day <= ?
                ORDER BY day
                """,
                (person_id, to_iso(start), to_iso(end)),
            ).fetchall()
        return [self._row_to_summary(r) for r in rows]

    def rebuild_person(self, person_id: int) -> int:
        """Drop every summary for a person and rebuild them from the ledger.

        Returns the number of days rebuilt.
        """
        with self._transaction() as conn:
            conn.execute("DELETE FROM day_summaries WHERE person_id = ?", (person_id,))
            days = [
                from_iso(r["day"])
                for r in conn.execute(
                    "SELECT DISTINCT day FROM task_completions WHERE person_id = ?",
                    (person_id,),
                ).fetchall()
            ]
            for day in days:
                recompute_day_summary(conn, person_id, day)
        logger.info("Rebuilt %d day summaries for person #%d", len(days), person_id)
        return len(days)

    def find_stale_days(self, person_id: int) -> list[date]:
        """Days whose cached summary disagrees with the ledger."""
        with self._reader() as conn:
            ledger = {
                r["day"]: (r["done"], r["total"])
                for r in conn.execute(
                    """
                    SELECT day, COALESCE(SUM(completed), 0) AS done, COUNT(*) AS total
                    FROM task_completions WHERE person_id = ?
                    GROUP BY day
                    """,
                    (person_id,),
                ).fetchall()
            }
            cached = {
                r["day"]: (r["completed_count"], r["total_count"], bool(r["is_level2"]))
                for r in conn.execute(
                    "SELECT * FROM day_summaries WHERE person_id = ?", (person_id,),
                ).fetchall()
            }

        stale: list[date] = []
        for day in sorted(set(ledger) | set(cached)):
            expected = ledger.get(day)
            if expected is None:
                stale.append(from_iso(day))
                continue
            done, total = expected
            if cached.get(day) != (done, total, is_level2(done, total)):
                stale.append(from_iso(day))
        return stale
