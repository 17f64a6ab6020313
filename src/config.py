"""
Family Chores Tracker — Centralized configuration.

Loads all settings from .env and validates them.
Every module that needs a setting imports the singleton from here.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite
    DATABASE_PATH: str = "data/chores.db"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Theme stored for people created without one
    DEFAULT_THEME: str = "default"

    @field_validator("DATABASE_PATH")
    @classmethod
    def check_database_path(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("DATABASE_PATH must not be empty")
        return v.strip()

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_log_level(cls, v: str) -> str:
        level = str(v).strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown LOG_LEVEL: {v!r}")
        return level


def _load_settings() -> Settings:
    """Load settings from environment, validating every key."""
    try:
        return Settings(
            DATABASE_PATH=os.getenv("DATABASE_PATH", "data/chores.db"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            DEFAULT_THEME=os.getenv("DEFAULT_THEME", "default"),
        )
    except ValidationError as exc:
        print(f"ERROR: invalid configuration in .env:\n{exc}", file=sys.stderr)
        sys.exit(1)


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
