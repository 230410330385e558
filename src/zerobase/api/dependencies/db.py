"""Database dependencies: main-database session and tenant connector."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.zerobase.core.db import TenantConnector, admin_connection, get_session, tenant_connection
from src.zerobase.services.project_service import AdminConnector


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """Get a session on the main database (project registry)."""
    async with get_session() as session:
        yield session


def get_tenant_connector() -> TenantConnector:
    """How tenant databases are reached. Overridden in tests."""
    return tenant_connection


def get_admin_connector() -> AdminConnector:
    """Autocommit connection for CREATE DATABASE. Overridden in tests."""
    return admin_connection


DBSession = Annotated[AsyncSession, Depends(get_db_session)]
TenantConnection = Annotated[TenantConnector, Depends(get_tenant_connector)]
AdminConnection = Annotated[AdminConnector, Depends(get_admin_connector)]
