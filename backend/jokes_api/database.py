"""
Jokes API — Database Engine & Session Management
=================================================

What:  Async SQLAlchemy engine construction, session factory, and Base model.
How:   build_engine() creates an async engine from a URL (pooling options only
       for server databases); build_session_factory() wraps it in an
       async_sessionmaker. The storage collaborator opens one session per call.
Who:   Used by the JokeRepository, the app lifespan, the health check and Alembic.

Connection Pooling (non-SQLite URLs):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite (aiosqlite) keeps SQLAlchemy's default pool for its URL type;
    it rejects QueuePool sizing arguments for in-memory databases.
"""

from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from jokes_api.config import Settings, settings as default_settings


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model registers with Base.metadata, which Alembic reads for
    migrations and create_tables() uses for development bootstrapping.
    """
    pass


# ── Engine Configuration ──────────────────────────────────────────────────
def build_engine(
    database_url: Optional[str] = None,
    config: Optional[Settings] = None,
) -> AsyncEngine:
    """
    Create the async engine for the configured database.

    Args:
        database_url: Overrides config.database_url (tests pass temp SQLite files)
        config: Settings instance; defaults to the module singleton

    Returns:
        AsyncEngine managing the connection pool
    """
    config = config or default_settings
    url = database_url or config.database_url

    engine_kwargs: Dict[str, Any] = {
        # Echo SQL queries in DEBUG mode for development visibility
        "echo": config.log_level == "DEBUG",
    }
    if not url.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_pre_ping=config.db_pool_pre_ping,
            pool_recycle=3600,
        )

    return create_async_engine(url, **engine_kwargs)


# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: records stay readable after the session closes,
# which is what the storage collaborator hands back to the service layer.
def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_tables(engine: AsyncEngine) -> None:
    """
    What:  Creates any missing tables registered on Base.metadata.
    When:  App startup when settings.db_create_tables is enabled.
    """
    # Models must be imported so their tables are registered on the metadata
    from jokes_api.models.joke import Joke  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping(engine: AsyncEngine) -> None:
    """Executes SELECT 1; raises whatever the driver raises when unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def dispose_engine(engine: AsyncEngine) -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
