"""Alembic environment for the patients/notes schema.

Uses the same URL resolution as the application (``database.resolve_database_url``),
so ``DATABASE_URL`` from the environment or ``.env`` decides the target. SQLite
targets migrate in batch mode since SQLite cannot ALTER most constraints in place.
"""
import asyncio
import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine

from config import settings
from database import resolve_database_url
from models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

DATABASE_URL, CONNECT_ARGS = resolve_database_url(settings)
IS_SQLITE = make_url(DATABASE_URL).get_backend_name() == "sqlite"

target_metadata = Base.metadata
config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=IS_SQLITE,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the patients/notes DDL as SQL instead of executing it."""
    _configure(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool, connect_args=CONNECT_ARGS)
    logger.info(
        "Migrating patients/notes schema on %s",
        make_url(DATABASE_URL).render_as_string(hide_password=True),
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
