"""Store ports — abstract interfaces for chore persistence.

Core modules depend on these protocols and errors, never on SQLite directly.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol

from src.data.models import (
    CompletionEntry,
    DaySummary,
    GlobalTask,
    Person,
    PersonalTask,
    TaskKind,
)


class ChoreStoreError(Exception):
    """Base class for every chore store failure."""


class NotFoundError(ChoreStoreError):
    """Raised when a referenced person or task does not exist."""


class ValidationError(ChoreStoreError):
    """Raised when input is malformed. Nothing has been written."""


class StorageError(ChoreStoreError):
    """Raised when the underlying storage call fails."""


class PeopleStore(Protocol):
    def add_person(self, name: str, role: str, theme: str = "default") -> Person: ...

    def get_person(self, person_id: int) -> Person | None: ...

    def list_people(self) -> list[Person]: ...

    def update_person(
        self,
        person_id: int,
        name: str | None = None,
        role: str | None = None,
        theme: str | None = None,
    ) -> Person | None: ...

    def delete_person(self, person_id: int) -> bool: ...


class TaskStore(Protocol):
    def add_global_task(self, title: str) -> GlobalTask: ...

    def get_global_task(self, task_id: int) -> GlobalTask | None: ...

    def list_global_tasks(self) -> list[GlobalTask]: ...

    def update_global_task(self, task_id: int, title: str) -> GlobalTask | None: ...

    def delete_global_task(self, task_id: int) -> bool: ...

    def add_personal_task(self, person_id: int, title: str) -> PersonalTask: ...

    def get_personal_task(self, task_id: int) -> PersonalTask | None: ...

    def list_personal_tasks(self, person_id: int) -> list[PersonalTask]: ...

    def update_personal_task(
        self, task_id: int, title: str | None = None, person_id: int | None = None,
    ) -> PersonalTask | None: ...

    def delete_personal_task(self, task_id: int) -> bool: ...


class CompletionLedger(Protocol):
    def upsert(
        self,
        person_id: int,
        task_id: int,
        task_kind: TaskKind,
        completed: bool,
        day: date | None = None,
    ) -> CompletionEntry: ...

    def list_for_person(
        self, person_id: int, day: date | None = None,
    ) -> list[CompletionEntry]: ...

    def get_entry(
        self,
        person_id: int,
        task_id: int,
        task_kind: TaskKind,
        day: date | None = None,
    ) -> CompletionEntry | None: ...


class CalendarStore(Protocol):
    def recompute_day(self, person_id: int, day: date) -> DaySummary: ...

    def get_summary(self, person_id: int, day: date) -> DaySummary | None: ...

    def list_summaries(
        self, person_id: int, start: date, end: date,
    ) -> list[DaySummary]: ...

    def rebuild_person(self, person_id: int) -> int: ...

    def find_stale_days(self, person_id: int) -> list[date]: ...
