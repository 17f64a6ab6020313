"""Shared test fixtures and configuration.

Sets environment variables before any src import so src.config loads
predictable settings, and provides stores backed by a temp DB file.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("DATABASE_PATH", "data/test_chores.db")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("DEFAULT_THEME", "default")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_chores.db")


@pytest.fixture
def people_db(tmp_db_path):
    from src.data.db import PeopleDB
    return PeopleDB(db_path=tmp_db_path)


@pytest.fixture
def task_db(tmp_db_path):
    from src.data.db import TaskDB
    return TaskDB(db_path=tmp_db_path)


@pytest.fixture
def completion_db(tmp_db_path):
    from src.data.ledger import CompletionDB
    return CompletionDB(db_path=tmp_db_path)


@pytest.fixture
def calendar_db(tmp_db_path):
    from src.data.ledger import CalendarDB
    return CalendarDB(db_path=tmp_db_path)


@pytest.fixture
def service(tmp_db_path):
    """Return a ChoreService wired to SQLite stores on one temp file."""
    from src.core.chore_service import create_chore_service
    return create_chore_service(db_path=tmp_db_path)
