"""Service test fixtures — async SQLite store, fakes, and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_user_repository dependency overridden with a repository over the test DB
    - db_manager and the repository singleton patched so readiness sees the test setup
    - The remote directory is always a FakeDirectoryClient (no network)

Design Decisions:
    - SQLite in-memory: fast, no external dependency, exercises the real SqlUserStore
    - collect() subscribes a list to a stream: assertions read what was published
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

import app.infrastructure.database as db_module
import app.services.user_repository as repository_module
from app.db.base import Base
from app.infrastructure.database import DatabaseSessionManager
from app.infrastructure.user_store import SqlUserStore
from app.main import app
from app.services.user_repository import UserRepository, get_user_repository

from tests.services.fakes import FakeDirectoryClient, InMemoryUserStore, make_user


@pytest.fixture
async def test_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def test_db_manager(test_engine):
    return DatabaseSessionManager.from_engine(test_engine)


@pytest.fixture
def sql_store(test_db_manager):
    return SqlUserStore(test_db_manager)


@pytest.fixture
def memory_store():
    return InMemoryUserStore()


@pytest.fixture
def directory():
    """Remote directory returning two users by default."""
    return FakeDirectoryClient([
        make_user("Leanne Graham", "Sincere@april.biz"),
        make_user("Ervin Howell", "Shanna@melissa.tv", city="Wisokyburgh"),
    ])


@pytest.fixture
def repository(sql_store, directory):
    return UserRepository(sql_store, directory)


@pytest.fixture
async def client(test_db_manager, repository, monkeypatch):
    """FastAPI test client with the repository dependency overridden."""
    app.dependency_overrides[get_user_repository] = lambda: repository
    monkeypatch.setattr(db_module, "db_manager", test_db_manager)
    monkeypatch.setattr(repository_module, "user_repository", repository)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
