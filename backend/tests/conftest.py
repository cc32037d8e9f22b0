"""
Emuji Backend: Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Database tests run against a temporary SQLite file through aiosqlite,
       using the same Database class and pool policy as production.
       HTTP tests use an HTTPX AsyncClient over ASGITransport.

Fixture Hierarchy (all function-scoped):
    ├── sqlite_url: URL of a fresh SQLite file under tmp_path
    ├── database: pooled Database with `emujis` and `votes` created
    ├── seed_emujis: coroutine inserting emuji rows
    ├── app_settings: Settings pointing at the test database
    ├── test_client: AsyncClient against an app wired to `database`
    └── mock_database: MagicMock standing in for Database (service patched)
"""

import os

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Dict, Iterable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert

from emuji.config import Settings
from emuji.database import Base, Database, PoolPolicy
from emuji.main import create_app
from emuji.models.emuji import Emuji


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'emuji.db'}"


@pytest.fixture
def app_settings(sqlite_url) -> Settings:
    return Settings(database_url=sqlite_url, log_level="WARNING", _env_file=None)


@pytest_asyncio.fixture
async def database(sqlite_url):
    """
    Pooled Database on a SQLite file with the schema created.

    Short acquire timeout so a leaked connection fails a test quickly
    instead of hanging for 30 seconds.
    """
    db = Database(sqlite_url, policy=PoolPolicy(acquire_timeout_ms=5_000))
    async with db.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db
    await db.dispose()


@pytest.fixture
def seed_emujis(database):
    """
    Insert emuji rows in the given order (ids ascend with insertion).

    Usage:
        await seed_emujis([{"emoji": "🔥", "artist": "A", "song": "S", "spotify_uri": "spotify:track:1"}])
    """

    async def _seed(rows: Iterable[Dict[str, str]]) -> None:
        async with database.begin() as conn:
            for row in rows:
                await conn.execute(insert(Emuji).values(**row))

    return _seed


@pytest_asyncio.fixture
async def test_client(app_settings, database):
    """HTTPX AsyncClient talking to an app that uses the `database` fixture."""
    app = create_app(settings=app_settings, database=database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def mock_database():
    """
    A MagicMock standing in for Database in route tests.

    The route tests patch emuji_service, so only the health check touches it.
    """
    db = MagicMock(spec=Database)
    db.ping = AsyncMock()
    db.status.return_value = {"size": 5, "checked_in": 5, "checked_out": 0, "overflow": 0}
    return db


@pytest.fixture
def make_client(app_settings, mock_database):
    """
    Factory for clients against an app backed by `mock_database`.

    Usage:
        async with make_client(record_votes=True) as client: ...
    """

    def _make(**overrides) -> AsyncClient:
        settings = app_settings.model_copy(update=overrides)
        app = create_app(settings=settings, database=mock_database)
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    return _make
