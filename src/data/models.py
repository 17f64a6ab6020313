"""
Family Chores Tracker — Data Models.

People and their chores persist in SQLite. Completion entries are the
source of truth; day summaries are a cache derived from them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class TaskKind(str, Enum):
    GLOBAL = "global"
    PERSONAL = "personal"


@dataclass
class Person:
    """A tracked family member."""

    id: int
    name: str
    role: str                  # free text, e.g. "Kid", "Parent"
    theme: str = "default"     # display preference only


@dataclass
class GlobalTask:
    """A chore that applies to every person."""

    id: int
    title: str


@dataclass
class PersonalTask:
    """A chore owned by exactly one person."""

    id: int
    person_id: int
    title: str


@dataclass
class CompletionEntry:
    """Whether a person finished a task on a given day.

    Unique per (person_id, task_id, task_kind, day).
    """

    id: int
    person_id: int
    task_id: int
    task_kind: TaskKind
    day: date
    completed: bool = False


@dataclass
class DaySummary:
    """Cached daily rollup for one person, derived from the ledger."""

    person_id: int
    day: date
    completed_count: int = 0
    total_count: int = 0
    is_level2: bool = False


@dataclass
class TaskView:
    """A task as seen by one person on one day."""

    id: int
    title: str
    completed: bool
    kind: TaskKind


@dataclass
class PersonSnapshot:
    """A person merged with their tasks and progress for a day."""

    id: int
    name: str
    role: str
    theme: str
    day: date
    global_tasks: list[TaskView] = field(default_factory=list)
    personal_tasks: list[TaskView] = field(default_factory=list)
    completed_tasks: int = 0
    total_tasks: int = 0
    progress: int = 0          # percent, 0..100
    is_level2: bool = False


@dataclass
class DayCell:
    """One square of the 42-day month grid."""

    day: date
    is_current_month: bool
    completed_count: int = 0
    total_count: int = 0
    is_level2: bool = False


@dataclass
class PersonMonthGrid:
    person_id: int
    name: str
    days: list[DayCell] = field(default_factory=list)
