"""Shared fixtures."""

from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from nftbot.db.database import Database


class FakeClock:
    """Settable clock for RecurrenceCalculator."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc))


@pytest_asyncio.fixture
async def database(tmp_path: Path):
    """File-backed SQLite database with every table created."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'nftbot.db'}")
    await db.create_schema()
    yield db
    await db.close()
