"""
Alembic environment configuration for accessguard's database migrations.

This script sets up the migration context, connects to the shared store using
settings.DATABASE_URL through the same async driver the application uses, and
targets the SQLModel metadata that every table module registers on import.
"""
import asyncio  # For running the async engine
from logging.config import fileConfig  # For configuring logging

from alembic import context  # For migration context
from sqlalchemy import pool  # For database connection
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from sqlmodel import SQLModel  # For metadata

import accessguard.domain.entities  # noqa: F401  (registers every table)
from accessguard.infrastructure.database.async_db import _build_async_url

# Alembic Config object, provides access to alembic.ini
config = context.config

# Set database URL from settings for consistency with FastAPI
config.set_main_option("sqlalchemy.url", _build_async_url().replace("%", "%%"))

# Configure logging from alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Target metadata for SQLModel models, includes all defined tables
target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode, generating SQL scripts without a database connection.
    """
    url = config.get_main_option("sqlalchemy.url")  # Database URL from config
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,  # Use literal SQL values
        dialect_opts={"paramstyle": "named"},  # Named parameters for SQL
    )

    with context.begin_transaction():
        context.run_migrations()  # Generate SQL scripts


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
        context.run_migrations()  # Apply migrations


async def run_migrations_online() -> None:
    """
    Run migrations in 'online' mode, connecting to the database.

    Uses a non-pooled connection to avoid conflicts during migrations.
    """
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),  # Database config from alembic.ini
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,  # Disable pooling for migrations
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()  # Run offline migrations
else:
    asyncio.run(run_migrations_online())  # Run online migrations
