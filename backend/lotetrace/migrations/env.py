"""
Alembic environment configuration

Row locks taken by the movement coordinator need a real PostgreSQL
connection; point DATABASE_URL at the database directly, not at a
transaction-mode pooler.
"""
from logging.config import fileConfig
from sqlalchemy import engine_from_config
from sqlalchemy import pool
from alembic import context

from lotetrace.core.database import Base
from lotetrace.core.config import settings
from lotetrace.models import *  # noqa: F401,F403 - register every table on Base.metadata

# this is the Alembic Config object
config = context.config

# Override sqlalchemy.url with settings
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# add your model's MetaData object here
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    try:
        with connectable.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                render_as_batch=connection.dialect.name == "sqlite",
            )

            with context.begin_transaction():
                context.run_migrations()
    except Exception as e:
        error_msg = str(e)
        if "could not translate host name" in error_msg or "nodename nor servname provided" in error_msg:
            db_url = config.get_main_option("sqlalchemy.url")
            hostname = db_url.split("@")[1].split(":")[0] if "@" in db_url else "unknown"
            print("\n" + "=" * 80)
            print("DATABASE CONNECTION ERROR")
            print("=" * 80)
            print(f"\nCannot resolve database hostname: {hostname}")
            print("\nCheck DATABASE_URL in your .env file, or generate SQL offline:")
            print("  alembic upgrade head --sql")
            print("=" * 80 + "\n")
        raise


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
