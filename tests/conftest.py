"""Shared fixtures: throwaway SQLite databases, a controllable clock, fast bcrypt."""

import os
from datetime import datetime, timedelta

import pytest

# bcrypt at production cost makes the suite crawl; must be set before import
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import db_sqlalchemy  # noqa: E402
from auth import UserStore  # noqa: E402
from models import PasteStore  # noqa: E402


class FakeClock:
    """Naive-UTC clock that only moves when told to."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'pastes.db'}"


@pytest.fixture
async def database(anyio_backend, database_url):
    await db_sqlalchemy.init_db(database_url)
    db = db_sqlalchemy.create_database(database_url)
    await db.connect()
    yield db
    await db.disconnect()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(database, clock):
    return PasteStore(database, clock=clock)


@pytest.fixture
def users(database, clock):
    return UserStore(database, clock=clock)
