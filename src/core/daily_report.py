"""
Family Chores Tracker — Daily Board.

Renders everyone's snapshot for a day as plain text, for the console
entry point or any chat surface that wants a quick overview.
"""

from __future__ import annotations

from datetime import date

from src.data.models import PersonSnapshot, TaskView

_BAR_WIDTH = 20


def _progress_bar(progress: int) -> str:
    filled = progress * _BAR_WIDTH // 100
    return "[" + "#" * filled + "-" * (_BAR_WIDTH - filled) + "]"


def _task_line(task: TaskView) -> str:
    mark = "x" if task.completed else " "
    return f"  [{mark}] {task.title}"


def format_person(snapshot: PersonSnapshot) -> str:
    """One person's block: header, progress bar, then their tasks."""
    header = f"{snapshot.name} ({snapshot.role})"
    if snapshot.is_level2:
        header += " * LEVEL 2 *"
    lines = [
        header,
        f"  {_progress_bar(snapshot.progress)} {snapshot.progress}% "
        f"({snapshot.completed_tasks}/{snapshot.total_tasks})",
    ]
    tasks = [*snapshot.global_tasks, *snapshot.personal_tasks]
    if not tasks:
        lines.append("  No tasks yet.")
    lines.extend(_task_line(t) for t in tasks)
    return "\n".join(lines)


def format_daily_board(snapshots: list[PersonSnapshot], day: date) -> str:
    """Everyone's progress for ``day``."""
    title = f"Chores for {day.strftime('%A, %d %B %Y')}"
    if not snapshots:
        return f"{title}\n\nNobody is being tracked yet."
    level2 = sum(1 for s in snapshots if s.is_level2)
    blocks = [title, f"Level 2: {level2}/{len(snapshots)} people"]
    blocks.extend(format_person(s) for s in snapshots)
    return "\n\n".join(blocks)
