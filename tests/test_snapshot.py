"""Tests for src.core.snapshot — progress and Level 2 derivation."""

from datetime import date

import pytest

from src.core.snapshot import build_snapshot, compute_progress
from src.data.models import (
    CompletionEntry,
    GlobalTask,
    Person,
    PersonalTask,
    TaskKind,
)

DAY = date(2024, 2, 14)
ISAAC = Person(id=1, name="Isaac", role="Kid", theme="space")


def _entry(task_id, kind, completed, day=DAY, person_id=1):
    return CompletionEntry(
        id=0, person_id=person_id, task_id=task_id,
        task_kind=kind, day=day, completed=completed,
    )


class TestComputeProgress:
    @pytest.mark.parametrize(
        "completed,total,expected",
        [(0, 0, 0), (0, 3, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 3, 100)],
    )
    def test_rounding(self, completed, total, expected):
        assert compute_progress(completed, total) == expected


class TestBuildSnapshot:
    def test_no_tasks(self):
        snap = build_snapshot(ISAAC, [], [], [], DAY)
        assert snap.total_tasks == 0
        assert snap.completed_tasks == 0
        assert snap.progress == 0
        assert snap.is_level2 is False

    def test_person_fields_are_merged(self):
        snap = build_snapshot(ISAAC, [], [], [], DAY)
        assert (snap.id, snap.name, snap.role, snap.theme) == (1, "Isaac", "Kid", "space")
        assert snap.day == DAY

    def test_all_done_is_level2(self):
        snap = build_snapshot(
            ISAAC,
            [GlobalTask(id=1, title="Dishes")],
            [PersonalTask(id=1, person_id=1, title="Homework")],
            [_entry(1, TaskKind.GLOBAL, True), _entry(1, TaskKind.PERSONAL, True)],
            DAY,
        )
        assert snap.completed_tasks == 2
        assert snap.total_tasks == 2
        assert snap.progress == 100
        assert snap.is_level2 is True

    def test_missing_entry_counts_as_not_done(self):
        snap = build_snapshot(
            ISAAC,
            [GlobalTask(id=1, title="Dishes"), GlobalTask(id=2, title="Trash")],
            [],
            [_entry(1, TaskKind.GLOBAL, True)],
            DAY,
        )
        assert [t.completed for t in snap.global_tasks] == [True, False]
        assert snap.progress == 50
        assert snap.is_level2 is False

    def test_entries_of_other_days_are_ignored(self):
        snap = build_snapshot(
            ISAAC,
            [GlobalTask(id=1, title="Dishes")],
            [],
            [_entry(1, TaskKind.GLOBAL, True, day=date(2024, 2, 13))],
            DAY,
        )
        assert snap.global_tasks[0].completed is False

    def test_kind_is_part_of_the_match(self):
        snap = build_snapshot(
            ISAAC,
            [GlobalTask(id=1, title="Dishes")],
            [PersonalTask(id=1, person_id=1, title="Homework")],
            [_entry(1, TaskKind.PERSONAL, True)],
            DAY,
        )
        assert snap.global_tasks[0].completed is False
        assert snap.personal_tasks[0].completed is True
        assert snap.personal_tasks[0].kind is TaskKind.PERSONAL

    def test_other_peoples_personal_tasks_are_ignored(self):
        snap = build_snapshot(
            ISAAC,
            [],
            [PersonalTask(id=7, person_id=2, title="Taxes")],
            [],
            DAY,
        )
        assert snap.personal_tasks == []
        assert snap.total_tasks == 0
