"""
Family Chores Tracker — Month Grid.

Lays a month out as 6 full weeks (42 days) starting on the Sunday on or
before the 1st, padding with days of the neighbouring months.
"""

from __future__ import annotations

from datetime import date, timedelta

from src.data.models import DayCell, DaySummary

GRID_DAYS = 42


def grid_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day (inclusive) of the grid for a month.

    Raises ValueError for a month outside 1..12 or a grid that would
    leave the supported date range.
    """
    first = date(year, month, 1)
    # date.weekday(): Monday=0; shift so Sunday=0
    lead_days = (first.weekday() + 1) % 7
    try:
        start = first - timedelta(days=lead_days)
        end = start + timedelta(days=GRID_DAYS - 1)
    except OverflowError as exc:
        raise ValueError(f"Month grid for {year}-{month:02d} is out of range") from exc
    return start, end


def build_month_grid(
    year: int, month: int, summaries: list[DaySummary],
) -> list[DayCell]:
    """Return the 42 cells for a month, oldest first.

    Days without a summary read as 0/0 and not Level 2.
    """
    start, _ = grid_bounds(year, month)
    by_day = {s.day: s for s in summaries}

    cells: list[DayCell] = []
    for offset in range(GRID_DAYS):
        day = start + timedelta(days=offset)
        summary = by_day.get(day)
        cells.append(DayCell(
            day=day,
            is_current_month=(day.year == year and day.month == month),
            completed_count=summary.completed_count if summary else 0,
            total_count=summary.total_count if summary else 0,
            is_level2=summary.is_level2 if summary else False,
        ))
    return cells
