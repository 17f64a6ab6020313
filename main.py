"""
Family Chores Tracker — Entry Point.

`python main.py` prints today's chore board for everyone.
"""

import asyncio
import logging
from datetime import date

from src.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from src.core.chore_service import create_chore_service
from src.core.daily_report import format_daily_board


async def main() -> None:
    service = create_chore_service()
    today = date.today()
    snapshots = await service.get_all_snapshots(today)
    print(format_daily_board(snapshots, today))


if __name__ == "__main__":
    asyncio.run(main())
