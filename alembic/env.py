# alembic/env.py
from __future__ import annotations
import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

# Settings loads .env / .env.production the same way the API does
from backoffice.config import get_settings
from backoffice.models.base import Base
import backoffice.models  # registers every model class on Base.metadata

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

# `alembic -x url=...` targets another database without touching the env
DATABASE_URL = context.get_x_argument(as_dictionary=True).get("url") or get_settings().database_url

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without connecting."""
    _configure(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    # sqlite cannot ALTER most constraints in place
    _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(DATABASE_URL, pool_pre_ping=True)
    async with engine.connect() as conn:
        await conn.run_sync(do_run_migrations)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
