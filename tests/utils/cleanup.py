"""Database cleanup utilities for integration fixtures."""

from sqlalchemy import text

from src.zerobase.core.db import admin_connection
from src.zerobase.core.security import validate_project_id


async def drop_project(project_id: str) -> None:
    """Remove a provisioned project: its registry row, then its physical database.

    The id is validated before it is spliced into ``DROP DATABASE``.
    """
    validate_project_id(project_id)
    async with admin_connection() as conn:
        await conn.execute(text("DELETE FROM projects WHERE id = :id"), {"id": project_id})
        await conn.execute(text(f'DROP DATABASE IF EXISTS "{project_id}" WITH (FORCE)'))
