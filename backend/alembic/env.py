"""
Alembic Migration Environment
===============================

What:  Configures Alembic to work with the async SQLAlchemy setup.
How:   Takes the URL from emuji.config (not from alembic.ini) and runs
       migrations through an async engine without pooling.
Who:   Called by `alembic` CLI commands (upgrade, downgrade, revision).
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from emuji.config import settings
from emuji.database import Base

# Alembic only sees models that are imported and registered with Base
from emuji.models.emuji import Emuji, Vote  # noqa: F401

# Alembic Config object, backed by alembic.ini
config = context.config

# Logging sections of alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# `emujis` and `votes` metadata for --autogenerate
target_metadata = Base.metadata

# Same URL resolution as the app: DATABASE_URL, then DB_HOST, then the Cloud SQL socket
url = settings.sqlalchemy_url
if isinstance(url, URL):
    url = url.render_as_string(hide_password=False)
# ConfigParser interpolation treats % specially
config.set_main_option("sqlalchemy.url", url.replace("%", "%%"))


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting to the database."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    """Run pending revisions in one transaction on a sync-wrapped connection."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Connect with an async engine and apply pending migrations via run_sync()."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,  # one short-lived connection, not the app pool
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Drive the async migration run from the synchronous alembic CLI."""
    asyncio.run(run_async_migrations())


# --sql selects offline mode
if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
