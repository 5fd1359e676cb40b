"""
Jokes API — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── db_engine / session_factory: fresh SQLite file per test (aiosqlite)
    ├── repository: JokeRepository over that database
    ├── seed_jokes: inserts rows with explicit timestamps
    ├── mock_store: AsyncMock storage collaborator (no database at all)
    ├── make_joke: builds transient Joke records for mock return values
    ├── test_client: HTTPX AsyncClient against an app backed by `repository`
    └── mock_client: HTTPX AsyncClient against an app backed by `mock_store`
"""

import os
import tempfile
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Override settings for testing BEFORE any app imports
_TEST_DIR = tempfile.mkdtemp(prefix="jokes_api_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/default.db"
os.environ["LOG_LEVEL"] = "WARNING"

from jokes_api.database import build_engine, build_session_factory, create_tables  # noqa: E402
from jokes_api.main import create_app  # noqa: E402
from jokes_api.models.joke import Joke  # noqa: E402
from jokes_api.repositories.joke_repository import JokeRepository  # noqa: E402


def sqlite_url(path) -> str:
    return f"sqlite+aiosqlite:///{path}"


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh SQLite database with the jokes table created."""
    engine = build_engine(sqlite_url(tmp_path / "jokes.db"))
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def repository(session_factory):
    return JokeRepository(session_factory)


@pytest.fixture
def seed_jokes(session_factory):
    """
    Inserts jokes directly, bypassing the API.

    Usage:
        jokes = await seed_jokes([
            {"text": "A", "author": "John", "created_at": datetime(...)},
        ])
    """

    async def _seed(rows: List[Dict[str, Any]]) -> List[Joke]:
        async with session_factory() as session:
            jokes = [Joke(**row) for row in rows]
            session.add_all(jokes)
            await session.commit()
            return jokes

    return _seed


# ══════════════════════════════════════════════════════════════════════════
# Mock Storage Collaborator
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_store():
    """
    A storage collaborator double.

    Usage:
        mock_store.find_unique.return_value = make_joke(id=1)
        mock_store.find_unique.assert_awaited_once_with(1)
    """
    store = AsyncMock()
    store.create = AsyncMock()
    store.find_unique = AsyncMock(return_value=None)
    store.find_many = AsyncMock(return_value=[])
    store.count = AsyncMock(return_value=0)
    return store


@pytest.fixture
def make_joke():
    """Builds transient Joke records (never added to a session)."""

    def _make(
        id: int = 1,
        text: str = "Why did the developer go broke? Because they used up all their cache.",
        author: Optional[str] = "Anonymous",
        created_at: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc),
    ) -> Joke:
        return Joke(id=id, text=text, author=author, created_at=created_at)

    return _make


# ══════════════════════════════════════════════════════════════════════════
# HTTP Clients
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(repository) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to an app wired to the SQLite repository.

    Usage:
        async def test_list(test_client):
            response = await test_client.get("/jokes")
            assert response.status_code == 200
    """
    app = create_app(store=repository)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def mock_client(mock_store) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to an app wired to mock_store.

    raise_app_exceptions=False: Starlette re-raises unhandled exceptions after
    the 500 handler has responded; the client should see the response.
    """
    app = create_app(store=mock_store)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
