"""Alembic runner for the main database's project registry."""

import asyncio

from alembic.config import Config

from alembic import command


def run_migrations_sync() -> None:
    """Run main-database migrations synchronously."""
    alembic_cfg = Config("alembic.ini")
    command.upgrade(alembic_cfg, "head")


async def run_migrations_async() -> None:
    """Run migrations from async context without blocking the event loop."""
    await asyncio.to_thread(run_migrations_sync)
