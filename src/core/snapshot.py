"""
Family Chores Tracker — Snapshot Aggregator.

Joins a person with every global task, their own personal tasks and the
completion entries of one day, then derives progress and Level 2.
Only the snapshot day's entries count: older days live on in the ledger
for the calendar, never in the live view.
"""

from __future__ import annotations

from datetime import date

from src.data.models import (
    CompletionEntry,
    GlobalTask,
    Person,
    PersonalTask,
    PersonSnapshot,
    TaskKind,
    TaskView,
)


def compute_progress(completed: int, total: int) -> int:
    """Percentage of tasks done, rounded half up. 0 when there are no tasks."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def build_snapshot(
    person: Person,
    global_tasks: list[GlobalTask],
    personal_tasks: list[PersonalTask],
    completions: list[CompletionEntry],
    day: date,
) -> PersonSnapshot:
    """Assemble a person's task list and metrics for ``day``.

    Entries for other people or other days are ignored, so callers may
    pass a person's whole ledger.
    """
    done = {
        (c.task_id, c.task_kind): c.completed
        for c in completions
        if c.person_id == person.id and c.day == day
    }

    global_views = [
        TaskView(
            id=t.id,
            title=t.title,
            completed=done.get((t.id, TaskKind.GLOBAL), False),
            kind=TaskKind.GLOBAL,
        )
        for t in global_tasks
    ]
    personal_views = [
        TaskView(
            id=t.id,
            title=t.title,
            completed=done.get((t.id, TaskKind.PERSONAL), False),
            kind=TaskKind.PERSONAL,
        )
        for t in personal_tasks
        if t.person_id == person.id
    ]

    total = len(global_views) + len(personal_views)
    completed = sum(1 for t in (*global_views, *personal_views) if t.completed)

    return PersonSnapshot(
        id=person.id,
        name=person.name,
        role=person.role,
        theme=person.theme,
        day=day,
        global_tasks=global_views,
        personal_tasks=personal_views,
        completed_tasks=completed,
        total_tasks=total,
        progress=compute_progress(completed, total),
        is_level2=total > 0 and completed == total,
    )
