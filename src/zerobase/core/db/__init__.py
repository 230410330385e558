"""Database utilities - engines, sessions, tenant locator, migrations."""

from src.zerobase.core.db.engine import (
    TenantConnector,
    admin_connection,
    dispose_engine,
    get_engine,
    locate_tenant_database,
    tenant_connection,
)
from src.zerobase.core.db.migrations import run_migrations_async, run_migrations_sync
from src.zerobase.core.db.session import get_session

__all__ = [
    # Main database
    "admin_connection",
    "dispose_engine",
    "get_engine",
    "get_session",
    # Tenant databases
    "TenantConnector",
    "locate_tenant_database",
    "tenant_connection",
    # Migrations
    "run_migrations_async",
    "run_migrations_sync",
]
