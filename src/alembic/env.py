import os
from logging.config import fileConfig

from sqlalchemy import create_engine, make_url, pool
from sqlmodel import SQLModel

from alembic import context
from src.zerobase.core.config import get_settings

# Import all models for metadata
from src.zerobase.models import Project  # noqa: F401

config = context.config

if config.config_file_name is not None and os.path.exists(config.config_file_name):
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata


def get_url() -> str:
    """The main database URL on the sync psycopg2 driver."""
    url = make_url(get_settings().database_url).set(drivername="postgresql+psycopg2")
    return url.render_as_string(hide_password=False)


def include_object(obj, name, type_, reflected, compare_to):
    """Only the main database's own tables are managed here.

    Tenant databases hold user-defined tables and are never migrated by Alembic.
    """
    if type_ != "table":
        return True
    return not reflected or name in target_metadata.tables


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode with sync engine."""
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            include_object=include_object,
        )
        with context.begin_transaction():
            context.run_migrations()

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
