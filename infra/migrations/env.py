# infra/migrations/env.py
from __future__ import annotations

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from alembic import context

# === App imports (settings and metadata) ===
from app.core.config import settings
from app.db.base import Base

# Registers users, providers, services, appointments, audit_logs for autogenerate.
import app.models  # noqa: F401

# Alembic Config object
config = context.config

# Logging config (from alembic.ini, when present)
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Target metadata for 'autogenerate'
target_metadata = Base.metadata

# DSN comes from settings (.env via pydantic-settings), async psycopg3 driver.
if settings.SQL_DSN:
    config.set_main_option("sqlalchemy.url", settings.SQL_DSN)

def run_migrations_offline() -> None:
    """Offline mode: emit SQL without connecting."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()

def do_run_migrations(connection: Connection) -> None:
    """Run migrations on a sync connection (Alembic itself is sync)."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()

async def run_migrations_online() -> None:
    """Online mode with an AsyncEngine; run_sync bridges to Alembic's sync API."""
    connectable: AsyncEngine = create_async_engine(
        config.get_main_option("sqlalchemy.url"),
        poolclass=pool.NullPool,  # no pool needed for a one-shot migration
    )

    async with connectable.connect() as async_conn:
        await async_conn.run_sync(do_run_migrations)

    await connectable.dispose()

if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
