"""
Alembic Migration Environment
==============================

What:  Runs the jokes schema migrations against settings.database_url.
How:   Online mode borrows the application's own engine builder
       (jokes_api.database.build_engine) and applies revisions through
       connection.run_sync(); offline mode renders SQL for the same URL.
Who:   Called by `alembic` CLI commands (upgrade, downgrade, revision).

SQLite cannot ALTER most column properties in place, so revisions run in
batch mode whenever the target dialect is SQLite.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection

from jokes_api.config import settings
from jokes_api.database import Base, build_engine, dispose_engine
from jokes_api.models.joke import Joke  # noqa: F401  (registers the jokes table)

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        **kwargs,
    )


def migrate_offline(url: str) -> None:
    """Emit the jokes schema as SQL without touching the database."""
    _configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate_connection(connection: Connection) -> None:
    _configure(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def migrate_online(url: str) -> None:
    engine = build_engine(url)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate_connection)
    finally:
        await dispose_engine(engine)


if context.is_offline_mode():
    migrate_offline(settings.database_url)
else:
    asyncio.run(migrate_online(settings.database_url))
