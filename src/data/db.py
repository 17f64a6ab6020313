"""
Family Chores Tracker — People and Task Database.

Entity store for people, global tasks and personal tasks. Global tasks are
never copied per person: who they apply to is worked out at read time.
Deletes cascade through the ledger and day summaries in one transaction.
"""

from __future__ import annotations

import logging
import sqlite3

from src.data.base import SQLiteStore
from src.data.ledger import retract_task_completions
from src.data.models import GlobalTask, Person, PersonalTask, TaskKind
from src.ports.store_port import NotFoundError

logger = logging.getLogger(__name__)


class PeopleDB(SQLiteStore):
    """SQLite-backed storage for tracked people."""

    @staticmethod
    def _row_to_person(row: sqlite3.Row) -> Person:
        return Person(
            id=row["id"],
            name=row["name"],
            role=row["role"],
            theme=row["theme"],
        )

    def add_person(self, name: str, role: str, theme: str = "default") -> Person:
        """Insert a new person. No ledger rows are created."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO people (name, role, theme) VALUES (?, ?, ?)",
                (name, role, theme),
            )
            person_id = cursor.lastrowid

        person = Person(id=person_id, name=name, role=role, theme=theme)
        logger.info("Person added: #%d '%s' (%s)", person_id, name, role)
        return person

    def get_person(self, person_id: int) -> Person | None:
        """Fetch a single person by ID."""
        with self._reader() as conn:
            row = conn.execute(
                "SELECT * FROM people WHERE id = ?", (person_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_person(row)

    def list_people(self) -> list[Person]:
        """Return every person in creation order."""
        with self._reader() as conn:
            rows = conn.execute("SELECT * FROM people ORDER BY id").fetchall()
        return [self._row_to_person(r) for r in rows]

    def update_person(
        self,
        person_id: int,
        name: str | None = None,
        role: str | None = None,
        theme: str | None = None,
    ) -> Person | None:
        """Change the given fields. Returns None if the person doesn't exist."""
        changes = {
            k: v for k, v in (("name", name), ("role", role), ("theme", theme))
            if v is not None
        }
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM people WHERE id = ?", (person_id,)
            ).fetchone()
            if row is None:
                return None
            if changes:
                assignments = ", ".join(f"{col} = ?" for col in changes)
                conn.execute(
                    f"UPDATE people SET {assignments} WHERE id = ?",
                    (*changes.values(), person_id),
                )

        person = self._row_to_person(row)
        for col, value in changes.items():
            setattr(person, col, value)
        if changes:
            logger.info("Person #%d updated: %s", person_id, ", ".join(changes))
        return person

    def delete_person(self, person_id: int) -> bool:
        """Delete a person with their completions, personal tasks and summaries."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM task_completions WHERE person_id = ?", (person_id,))
            conn.execute("DELETE FROM personal_tasks WHERE person_id = ?", (person_id,))
            conn.execute("DELETE FROM day_summaries WHERE person_id = ?", (person_id,))
            cursor = conn.execute("DELETE FROM people WHERE id = ?", (person_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Person #%d deleted with all their history", person_id)
        return deleted


class TaskDB(SQLiteStore):
    """SQLite-backed storage for global and personal tasks."""

    @staticmethod
    def _row_to_global(row: sqlite3.Row) -> GlobalTask:
        return GlobalTask(id=row["id"], title=row["title"])

    @staticmethod
    def _row_to_personal(row: sqlite3.Row) -> PersonalTask:
        return PersonalTask(
            id=row["id"],
            person_id=row["person_id"],
            title=row["title"],
        )

    # -- global tasks ------------------------------------------------------

    def add_global_task(self, title: str) -> GlobalTask:
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO global_tasks (title) VALUES (?)", (title,),
            )
            task_id = cursor.lastrowid
        logger.info("Global task added: #%d '%s'", task_id, title)
        return GlobalTask(id=task_id, title=title)

    def get_global_task(self, task_id: int) -> GlobalTask | None:
        with self._reader() as conn:
            row = conn.execute(
                "SELECT * FROM global_tasks WHERE id = ?", (task_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_global(row)

    def list_global_tasks(self) -> list[GlobalTask]:
        with self._reader() as conn:
            rows = conn.execute("SELECT * FROM global_tasks ORDER BY id").fetchall()
        return [self._row_to_global(r) for r in rows]

    def update_global_task(self, task_id: int, title: str) -> GlobalTask | None:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE global_tasks SET title = ? WHERE id = ?", (title, task_id),
            )
        if cursor.rowcount == 0:
            return None
        logger.info("Global task #%d renamed to '%s'", task_id, title)
        return GlobalTask(id=task_id, title=title)

    def delete_global_task(self, task_id: int) -> bool:
        """Delete a global task and retract it from everyone's history."""
        with self._transaction() as conn:
            if conn.execute(
                "SELECT 1 FROM global_tasks WHERE id = ?", (task_id,)
            ).fetchone() is None:
                return False
            removed = retract_task_completions(conn, task_id, TaskKind.GLOBAL)
            conn.execute("DELETE FROM global_tasks WHERE id = ?", (task_id,))
        logger.info(
            "Global task #%d deleted (%d completion entries retracted)", task_id, removed,
        )
        return True

    # -- personal tasks ----------------------------------------------------

    def add_personal_task(self, person_id: int, title: str) -> PersonalTask:
        """Insert a task owned by one person. Raises NotFoundError for a missing owner."""
        with self._transaction() as conn:
            if conn.execute(
                "SELECT 1 FROM people WHERE id = ?", (person_id,)
            ).fetchone() is None:
                raise NotFoundError(f"Person {person_id} not found")
            cursor = conn.execute(
                "INSERT INTO personal_tasks (person_id, title) VALUES (?, ?)",
                (person_id, title),
            )
            task_id = cursor.lastrowid
        logger.info("Personal task added: #%d '%s' for person #%d", task_id, title, person_id)
        return PersonalTask(id=task_id, person_id=person_id, title=title)

    def get_personal_task(self, task_id: int) -> PersonalTask | None:
        with self._reader() as conn:
            row = conn.execute(
                "SELECT * FROM personal_tasks WHERE id = ?", (task_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_personal(row)

    def list_personal_tasks(self, person_id: int) -> list[PersonalTask]:
        with self._reader() as conn:
            rows = conn.execute(
                "SELECT * FROM personal_tasks WHERE person_id = ? ORDER BY id",
                (person_id,),
            ).fetchall()
        return [self._row_to_personal(r) for r in rows]

    def update_personal_task(
        self, task_id: int, title: str | None = None, person_id: int | None = None,
    ) -> PersonalTask | None:
        """Rename and/or reassign a personal task.

        Reassigning retracts the task's history from the previous owner,
        the same way deleting it would. Returns None for a missing task;
        raises NotFoundError for a missing new owner.
        """
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM personal_tasks WHERE id = ?", (task_id,)
            ).fetchone()
            if row is None:
                return None
            task = self._row_to_personal(row)

            if person_id is not None and person_id != task.person_id:
                if conn.execute(
                    "SELECT 1 FROM people WHERE id = ?", (person_id,)
                ).fetchone() is None:
                    raise NotFoundError(f"Person {person_id} not found")
                retract_task_completions(
                    conn, task_id, TaskKind.PERSONAL, person_id=task.person_id,
                )
                task.person_id = person_id
            if title is not None:
                task.title = title

            conn.execute(
                "UPDATE personal_tasks SET title = ?, person_id = ? WHERE id = ?",
                (task.title, task.person_id, task_id),
            )
        logger.info("Personal task #%d updated", task_id)
        return task

    def delete_personal_task(self, task_id: int) -> bool:
        """Delete a personal task and retract it from its owner's history."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM personal_tasks WHERE id = ?", (task_id,)
            ).fetchone()
            if row is None:
                return False
            removed = retract_task_completions(
                conn, task_id, TaskKind.PERSONAL, person_id=row["person_id"],
            )
            conn.execute("DELETE FROM personal_tasks WHERE id = ?", (task_id,))
        logger.info(
            "Personal task #%d deleted (%d completion entries retracted)", task_id, removed,
        )
        return True
