"""
Shared fixtures: a throwaway SQLite database per test and a controllable clock.
"""

from datetime import datetime, timedelta

import pytest

from parking_tracker.database import create_engine, create_sessionmaker, init_db
from parking_tracker.service import ParkingService


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 1, 15, 10, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'parking.db'}"


@pytest.fixture
async def sessionmaker(database_url):
    engine = create_engine(database_url)
    await init_db(engine)
    yield create_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
async def db(sessionmaker):
    async with sessionmaker() as session:
        yield session


@pytest.fixture
def service(clock):
    return ParkingService(default_rate_per_hour=5.0, clock=clock)
