"""
Alembic environment for the Account Management API.

  - The database URL comes from account_management.config.settings (.env),
    never from alembic.ini.
  - account_management.models is imported so every table (tenants, users,
    signups, logins) is registered on Base.metadata for autogenerate.
  - compare_type / compare_server_default make autogenerate notice column type
    and server default changes.
  - SQLite (local runs) gets batch mode, since it cannot ALTER most columns.

Running migrations:
  Generate:  alembic revision --autogenerate -m "describe_change"
  Apply:     alembic upgrade head
  Rollback:  alembic downgrade -1
"""

import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

# Make `account_management` importable when alembic runs from another directory
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from account_management.config import settings
from account_management.database import Base
import account_management.models  # noqa: F401  registers all ORM models

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure_options(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """
    Emit SQL to stdout instead of executing it.

    Usage: alembic upgrade head --sql
    """
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Connect and apply migrations. NullPool: the migration run opens and closes
    its own connection instead of borrowing from the app's pool.
    """
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            **_configure_options(settings.database_url),
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
