"""
Family Chores Tracker — UI-Agnostic Chore Service.

Async service layer that orchestrates all business logic:
validate input -> write through the stores -> return records, snapshots
and month grids.

Each outer surface (HTTP API, CLI, bot) calls this service and renders the
returned dataclasses its own way. Store calls are blocking SQLite work and
run in a worker thread. Anything that changes a person's day summaries is
serialized per person.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, datetime
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from src.core.calendar_grid import build_month_grid, grid_bounds
from src.core.snapshot import build_snapshot
from src.data.models import (
    CompletionEntry,
    DayCell,
    GlobalTask,
    Person,
    PersonalTask,
    PersonMonthGrid,
    PersonSnapshot,
    TaskKind,
)
from src.ports.store_port import (
    CalendarStore,
    CompletionLedger,
    NotFoundError,
    PeopleStore,
    TaskStore,
    ValidationError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input shapes
# ---------------------------------------------------------------------------


def _required_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class PersonInput(BaseModel):
    name: str
    role: str
    theme: str = "default"

    @field_validator("name", "theme")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _required_text(v)

    @field_validator("role")
    @classmethod
    def strip_role(cls, v: str) -> str:
        return v.strip()


class PersonPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    role: str | None = None
    theme: str | None = None

    @field_validator("name", "theme")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return None if v is None else _required_text(v)

    @field_validator("role")
    @classmethod
    def strip_role(cls, v: str | None) -> str | None:
        return None if v is None else v.strip()


class TaskInput(BaseModel):
    title: str

    @field_validator("title")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _required_text(v)


class PersonalTaskPatch(BaseModel):
    title: str | None = None
    person_id: int | None = None

    @field_validator("title")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return None if v is None else _required_text(v)


class CompletionInput(BaseModel):
    person_id: int
    task_id: int
    task_kind: TaskKind
    completed: bool


class MonthInput(BaseModel):
    year: int = Field(ge=MINYEAR, le=MAXYEAR)
    month: int = Field(ge=1, le=12)


ModelT = TypeVar("ModelT", bound=BaseModel)


def _validate(model: type[ModelT], **data) -> ModelT:
    """Build an input model, re-raising pydantic errors as ValidationError."""
    try:
        return model(**data)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__}: {exc}") from exc


def _day_or_today(day: date | None) -> date:
    """Default to today; a datetime counts as its calendar day."""
    if day is None:
        return date.today()
    if isinstance(day, datetime):
        return day.date()
    return day


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


@dataclass
class CompletionResult:
    entry: CompletionEntry
    snapshot: PersonSnapshot


# ---------------------------------------------------------------------------
# Per-person locks
# ---------------------------------------------------------------------------


class PersonLocks:
    """One asyncio.Lock per person id, taken in ascending id order.

    An asyncio.Lock belongs to the event loop that first waits on it, so
    the map is rebuilt whenever it is used from a different running loop.
    A service can then outlive one ``asyncio.run()`` and be reused in the next.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    def get(self, person_id: int) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if loop is not self._loop:
            self._loop = loop
            self._locks = {}
        lock = self._locks.get(person_id)
        if lock is None:
            lock = self._locks[person_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, *person_ids: int) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for person_id in sorted(set(person_ids)):
                await stack.enter_async_context(self.get(person_id))
            yield

    def discard(self, person_id: int) -> None:
        # Person ids are AUTOINCREMENT and never reused, so a waiter still
        # holding the dropped lock can only touch the deleted person.
        self._locks.pop(person_id, None)


# ---------------------------------------------------------------------------
# ChoreService
# ---------------------------------------------------------------------------


class ChoreService:
    """Async façade over the people, task, ledger and calendar stores.

    Missing ids raise NotFoundError, bad input raises ValidationError and
    storage failures surface as StorageError. Nothing is retried.
    """

    def __init__(
        self,
        people: PeopleStore,
        tasks: TaskStore,
        ledger: CompletionLedger,
        calendar: CalendarStore,
    ) -> None:
        self._people = people
        self._tasks = tasks
        self._ledger = ledger
        self._calendar = calendar
        self._locks = PersonLocks()

    async def _require_person(self, person_id: int) -> Person:
        person = await asyncio.to_thread(self._people.get_person, person_id)
        if person is None:
            raise NotFoundError(f"Person {person_id} not found")
        return person

    # ------------------------------------------------------------------
    # People
    # ------------------------------------------------------------------

    async def create_person(
        self, name: str, role: str, theme: str | None = None,
    ) -> Person:
        if theme is None:
            from src.config import settings
            theme = settings.DEFAULT_THEME
        data = _validate(PersonInput, name=name, role=role, theme=theme)
        return await asyncio.to_thread(
            self._people.add_person, data.name, data.role, data.theme,
        )

    async def update_person(self, person_id: int, **fields) -> Person:
        """Change any of name, role, theme."""
        data = _validate(PersonPatch, **fields)
        person = await asyncio.to_thread(
            self._people.update_person, person_id,
            name=data.name, role=data.role, theme=data.theme,
        )
        if person is None:
            raise NotFoundError(f"Person {person_id} not found")
        return person

    async def delete_person(self, person_id: int) -> None:
        """Delete a person with their completions, personal tasks and summaries."""
        async with self._locks.hold(person_id):
            deleted = await asyncio.to_thread(self._people.delete_person, person_id)
        if not deleted:
            raise NotFoundError(f"Person {person_id} not found")
        self._locks.discard(person_id)

    async def list_people(self) -> list[Person]:
        return await asyncio.to_thread(self._people.list_people)

    # ------------------------------------------------------------------
    # Global tasks
    # ------------------------------------------------------------------

    async def create_global_task(self, title: str) -> GlobalTask:
        data = _validate(TaskInput, title=title)
        return await asyncio.to_thread(self._tasks.add_global_task, data.title)

    async def update_global_task(self, task_id: int, title: str) -> GlobalTask:
        data = _validate(TaskInput, title=title)
        task = await asyncio.to_thread(self._tasks.update_global_task, task_id, data.title)
        if task is None:
            raise NotFoundError(f"Global task {task_id} not found")
        return task

    async def delete_global_task(self, task_id: int) -> None:
        """Delete a global task and retract it from every person's history."""
        people = await asyncio.to_thread(self._people.list_people)
        async with self._locks.hold(*(p.id for p in people)):
            deleted = await asyncio.to_thread(self._tasks.delete_global_task, task_id)
        if not deleted:
            raise NotFoundError(f"Global task {task_id} not found")

    async def list_global_tasks(self) -> list[GlobalTask]:
        return await asyncio.to_thread(self._tasks.list_global_tasks)

    # ------------------------------------------------------------------
    # Personal tasks
    # ------------------------------------------------------------------

    async def create_personal_task(self, person_id: int, title: str) -> PersonalTask:
        data = _validate(TaskInput, title=title)
        return await asyncio.to_thread(
            self._tasks.add_personal_task, person_id, data.title,
        )

    async def update_personal_task(
        self, task_id: int, title: str | None = None, person_id: int | None = None,
    ) -> PersonalTask:
        """Rename a personal task and/or hand it to another person."""
        data = _validate(PersonalTaskPatch, title=title, person_id=person_id)
        current = await asyncio.to_thread(self._tasks.get_personal_task, task_id)
        if current is None:
            raise NotFoundError(f"Personal task {task_id} not found")

        owners = [current.person_id]
        if data.person_id is not None:
            owners.append(data.person_id)
        async with self._locks.hold(*owners):
            task = await asyncio.to_thread(
                self._tasks.update_personal_task, task_id,
                title=data.title, person_id=data.person_id,
            )
        if task is None:
            raise NotFoundError(f"Personal task {task_id} not found")
        return task

    async def delete_personal_task(self, task_id: int) -> None:
        task = await asyncio.to_thread(self._tasks.get_personal_task, task_id)
        if task is None:
            raise NotFoundError(f"Personal task {task_id} not found")
        async with self._locks.hold(task.person_id):
            deleted = await asyncio.to_thread(self._tasks.delete_personal_task, task_id)
        if not deleted:
            raise NotFoundError(f"Personal task {task_id} not found")

    async def list_personal_tasks(self, person_id: int) -> list[PersonalTask]:
        await self._require_person(person_id)
        return await asyncio.to_thread(self._tasks.list_personal_tasks, person_id)

    # ------------------------------------------------------------------
    # Completions and snapshots
    # ------------------------------------------------------------------

    async def set_task_completion(
        self,
        person_id: int,
        task_id: int,
        task_kind: TaskKind | str,
        completed: bool,
        day: date | None = None,
    ) -> CompletionResult:
        """Record whether a person finished a task on a day (default today).

        Returns the ledger entry together with the refreshed snapshot for
        that day.
        """
        data = _validate(
            CompletionInput,
            person_id=person_id, task_id=task_id,
            task_kind=task_kind, completed=completed,
        )
        day = _day_or_today(day)

        async with self._locks.hold(data.person_id):
            entry = await asyncio.to_thread(
                self._ledger.upsert,
                data.person_id, data.task_id, data.task_kind, data.completed, day,
            )
        snapshot = await self.get_person_snapshot(data.person_id, day)
        return CompletionResult(entry=entry, snapshot=snapshot)

    def _load_snapshot(
        self, person: Person, global_tasks: list[GlobalTask], day: date,
    ) -> PersonSnapshot:
        personal = self._tasks.list_personal_tasks(person.id)
        completions = self._ledger.list_for_person(person.id, day)
        return build_snapshot(person, global_tasks, personal, completions, day)

    async def get_person_snapshot(
        self, person_id: int, day: date | None = None,
    ) -> PersonSnapshot:
        """A person's tasks, completion flags and progress for a day (default today)."""
        day = _day_or_today(day)
        person = await self._require_person(person_id)
        global_tasks = await asyncio.to_thread(self._tasks.list_global_tasks)
        return await asyncio.to_thread(self._load_snapshot, person, global_tasks, day)

    async def get_all_snapshots(self, day: date | None = None) -> list[PersonSnapshot]:
        """Snapshots for every person, in creation order."""
        day = _day_or_today(day)
        people = await asyncio.to_thread(self._people.list_people)
        global_tasks = await asyncio.to_thread(self._tasks.list_global_tasks)
        return [
            await asyncio.to_thread(self._load_snapshot, person, global_tasks, day)
            for person in people
        ]

    # ------------------------------------------------------------------
    # Calendar
    # ------------------------------------------------------------------

    async def _grid_for(self, person_id: int, year: int, month: int) -> list[DayCell]:
        start, end = grid_bounds(year, month)
        summaries = await asyncio.to_thread(
            self._calendar.list_summaries, person_id, start, end,
        )
        return build_month_grid(year, month, summaries)

    @staticmethod
    def _check_month(year: int, month: int) -> MonthInput:
        data = _validate(MonthInput, year=year, month=month)
        try:
            grid_bounds(data.year, data.month)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return data

    async def get_month_grid(self, person_id: int, year: int, month: int) -> list[DayCell]:
        """The 42-day grid of daily summaries around a month."""
        data = self._check_month(year, month)
        await self._require_person(person_id)
        return await self._grid_for(person_id, data.year, data.month)

    async def get_all_people_month_grids(self, year: int, month: int) -> list[PersonMonthGrid]:
        data = self._check_month(year, month)
        people = await asyncio.to_thread(self._people.list_people)
        return [
            PersonMonthGrid(
                person_id=person.id,
                name=person.name,
                days=await self._grid_for(person.id, data.year, data.month),
            )
            for person in people
        ]

    async def rebuild_calendar(self, person_id: int) -> int:
        """Rebuild a person's day summaries from the ledger. Returns days rebuilt."""
        await self._require_person(person_id)
        async with self._locks.hold(person_id):
            stale = await asyncio.to_thread(self._calendar.find_stale_days, person_id)
            if stale:
                logger.warning(
                    "Person #%d has %d stale day summaries, first %s",
                    person_id, len(stale), stale[0].isoformat(),
                )
            return await asyncio.to_thread(self._calendar.rebuild_person, person_id)

    async def find_stale_days(self, person_id: int) -> list[date]:
        """Days whose cached summary no longer matches the ledger."""
        await self._require_person(person_id)
        return await asyncio.to_thread(self._calendar.find_stale_days, person_id)


def create_chore_service(db_path: str | None = None) -> ChoreService:
    """Return a ChoreService backed by the SQLite stores at ``db_path``."""
    from src.data.db import PeopleDB, TaskDB
    from src.data.ledger import CalendarDB, CompletionDB

    return ChoreService(
        people=PeopleDB(db_path),
        tasks=TaskDB(db_path),
        ledger=CompletionDB(db_path),
        calendar=CalendarDB(db_path),
    )
