"""Tests for src.data.ledger — CompletionDB and CalendarDB."""

import sqlite3
from datetime import date, datetime

import pytest

from src.data.models import TaskKind
from src.ports.store_port import NotFoundError


@pytest.fixture
def household(people_db, task_db):
    """Isaac with one global and one personal task."""
    isaac = people_db.add_person("Isaac", "Kid")
    dishes = task_db.add_global_task("Dishes")
    homework = task_db.add_personal_task(isaac.id, "Homework")
    return isaac, dishes, homework


class TestCompletionUpsert:
    def test_upsert_returns_entry(self, household, completion_db):
        isaac, dishes, _ = household
        day = date(2024, 2, 14)
        entry = completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True, day)
        assert entry.id is not None
        assert entry.person_id == isaac.id
        assert entry.task_id == dishes.id
        assert entry.task_kind is TaskKind.GLOBAL
        assert entry.day == day
        assert entry.completed is True

    def test_upsert_defaults_to_today(self, household, completion_db):
        isaac, dishes, _ = household
        entry = completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True)
        assert entry.day == date.today()

    def test_datetime_day_is_stored_as_its_date(
        self, household, completion_db, calendar_db,
    ):
        isaac, dishes, _ = household
        morning = datetime(2024, 2, 14, 9, 0)
        evening = datetime(2024, 2, 14, 18, 30)
        completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True, morning)
        entry = completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, False, evening)

        assert type(entry.day) is date
        assert entry.day == date(2024, 2, 14)
        assert len(completion_db.list_for_person(isaac.id)) == 1
        assert len(completion_db.list_for_person(isaac.id, morning)) == 1
        assert completion_db.get_entry(isaac.id, dishes.id, TaskKind.GLOBAL, morning) == entry

        summaries = calendar_db.list_summaries(isaac.id, date(2024, 2, 1), date(2024, 2, 29))
        assert [(s.day, s.completed_count, s.total_count) for s in summaries] == [
            (date(2024, 2, 14), 0, 1),
        ]
        assert calendar_db.find_stale_days(isaac.id) == []

    def test_same_day_toggle_overwrites(self, household, completion_db):
        isaac, dishes, _ = household
        day = date(2024, 2, 14)
        first = completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True, day)
        second = completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, False, day)
        entries = completion_db.list_for_person(isaac.id)
        assert len(entries) == 1
        assert second.id == first.id
        assert entries[0].completed is False

    def test_idempotent_toggle(self, household, completion_db):
        isaac, dishes, _ = household
        day = date(2024, 2, 14)
        completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True, day)
        completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True, day)
        assert len(completion_db.list_for_person(isaac.id)) == 1

    def test_different_days_keep_separate_entries(self, household, completion_db):
        isaac, dishes, _ = household
        completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True, date(2024, 2, 14))
        completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, False, date(2024, 2, 15))
        assert len(completion_db.list_for_person(isaac.id)) == 2
        assert len(completion_db.list_for_person(isaac.id, date(2024, 2, 15))) == 1

    def test_same_task_id_different_kind_is_separate(self, household, completion_db, task_db):
        isaac, dishes, homework = household
        day = date(2024, 2, 14)
        # Ids of the two task tables overlap: both start at 1
        assert dishes.id == homework.id
        completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True, day)
        completion_db.upsert(isaac.id, homework.id, TaskKind.PERSONAL, False, day)
        assert len(completion_db.list_for_person(isaac.id, day)) == 2

    def test_get_entry(self, household, completion_db):
        isaac, dishes, _ = household
        day = date(2024, 2, 14)
        completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True, day)
        assert completion_db.get_entry(isaac.id, dishes.id, TaskKind.GLOBAL, day).completed
        assert completion_db.get_entry(isaac.id, dishes.id, TaskKind.PERSONAL, day) is None
        assert completion_db.get_entry(isaac.id, dishes.id, TaskKind.GLOBAL) is None

    def test_missing_person_raises(self, household, completion_db):
        _, dishes, _ = household
        with pytest.raises(NotFoundError):
            completion_db.upsert(999, dishes.id, TaskKind.GLOBAL, True)

    def test_missing_task_raises(self, household, completion_db):
        isaac, _, _ = household
        with pytest.raises(NotFoundError):
            completion_db.upsert(isaac.id, 999, TaskKind.GLOBAL, True)

    def test_someone_elses_personal_task_raises(
        self, household, completion_db, people_db,
    ):
        _, _, homework = household
        dana = people_db.add_person("Dana", "Parent")
        with pytest.raises(NotFoundError):
            completion_db.upsert(dana.id, homework.id, TaskKind.PERSONAL, True)
        assert completion_db.list_for_person(dana.id) == []


class TestDaySummaryRecompute:
    def test_upsert_recomputes_summary(self, household, completion_db, calendar_db):
        isaac, dishes, homework = household
        day = date(2024, 2, 14)
        completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True, day)
        summary = calendar_db.get_summary(isaac.id, day)
        assert (summary.completed_count, summary.total_count) == (1, 1)
        assert summary.is_level2 is True

        completion_db.upsert(isaac.id, homework.id, TaskKind.PERSONAL, False, day)
        summary = calendar_db.get_summary(isaac.id, day)
        assert (summary.completed_count, summary.total_count) == (1, 2)
        assert summary.is_level2 is False

    def test_total_counts_recorded_entries_not_defined_tasks(
        self, household, completion_db, calendar_db, task_db,
    ):
        isaac, dishes, _ = household
        day = date(2024, 2, 14)
        completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True, day)
        task_db.add_global_task("Trash")
        assert calendar_db.get_summary(isaac.id, day).total_count == 1

    def test_recompute_day_without_entries(self, household, calendar_db):
        isaac, _, _ = household
        summary = calendar_db.recompute_day(isaac.id, date(2024, 2, 1))
        assert (summary.completed_count, summary.total_count) == (0, 0)
        assert summary.is_level2 is False
        assert calendar_db.get_summary(isaac.id, date(2024, 2, 1)) is None

    def test_list_summaries_range_inclusive(self, household, completion_db, calendar_db):
        isaac, dishes, _ = household
        for d in (1, 10, 20):
            completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, True, date(2024, 2, d))
        days = [s.day for s in calendar_db.list_summaries(
            isaac.id, date(2024, 2, 10), date(2024, 2, 20),
        )]
        assert days == [date(2024, 2, 10), date(2024, 2, 20)]


class TestRebuild:
    def _corrupt(self, tmp_db_path, person_id, day):
        conn = sqlite3.connect(tmp_db_path)
        conn.execute(
            "UPDATE day_summaries SET completed_count = 5, total_count = 5, is_level2 = 1 "
            "WHERE person_id = ? AND day = ?",
            (person_id, day.isoformat()),
        )
        conn.execute(
            "INSERT INTO day_summaries (person_id, day, completed_count, total_count, is_level2) "
            "VALUES (?, '2024-01-01', 1, 1, 1)",
            (person_id,),
        )
        conn.commit()
        conn.close()

    def test_find_stale_days(self, household, completion_db, calendar_db, tmp_db_path):
        isaac, dishes, _ = household
        day = date(2024, 2, 14)
        completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, False, day)
        assert calendar_db.find_stale_days(isaac.id) == []

        self._corrupt(tmp_db_path, isaac.id, day)
        assert calendar_db.find_stale_days(isaac.id) == [date(2024, 1, 1), day]

    def test_rebuild_person_repairs_summaries(
        self, household, completion_db, calendar_db, tmp_db_path,
    ):
        isaac, dishes, _ = household
        day = date(2024, 2, 14)
        completion_db.upsert(isaac.id, dishes.id, TaskKind.GLOBAL, False, day)
        self._corrupt(tmp_db_path, isaac.id, day)

        assert calendar_db.rebuild_person(isaac.id) == 1

        summary = calendar_db.get_summary(isaac.id, day)
        assert (summary.completed_count, summary.total_count) == (0, 1)
        assert summary.is_level2 is False
        assert calendar_db.get_summary(isaac.id, date(2024, 1, 1)) is None
        assert calendar_db.find_stale_days(isaac.id) == []
