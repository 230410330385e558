"""FastAPI dependency injection definitions.

Re-exports all dependencies for convenience.
"""

from src.zerobase.api.dependencies.access import (
    GatedProject,
    SessionUserId,
    get_access_decision,
    get_session_user_id,
    resolve_project_id,
)
from src.zerobase.api.dependencies.db import (
    AdminConnection,
    DBSession,
    TenantConnection,
    get_admin_connector,
    get_db_session,
    get_tenant_connector,
)
from src.zerobase.api.dependencies.realtime import (
    ProjectFinder,
    ProjectLookup,
    Realtime,
    get_project_finder,
    get_realtime_notifier,
)
from src.zerobase.api.dependencies.services import (
    AccessGateDep,
    AuthServiceDep,
    DocumentStoreDep,
    LogWriterDep,
    ProjectRepo,
    ProjectServiceDep,
    SchemaManagerDep,
    StorageDep,
    get_access_gate,
    get_auth_service,
    get_document_store,
    get_log_writer,
    get_project_repository,
    get_project_service,
    get_schema_manager,
    get_storage_manager,
)

__all__ = [
    # Database
    "AdminConnection",
    "DBSession",
    "TenantConnection",
    "get_admin_connector",
    "get_db_session",
    "get_tenant_connector",
    # Access gate
    "GatedProject",
    "SessionUserId",
    "get_access_decision",
    "get_session_user_id",
    "resolve_project_id",
    # Realtime
    "ProjectFinder",
    "ProjectLookup",
    "Realtime",
    "get_project_finder",
    "get_realtime_notifier",
    # Services
    "AccessGateDep",
    "AuthServiceDep",
    "DocumentStoreDep",
    "LogWriterDep",
    "ProjectRepo",
    "ProjectServiceDep",
    "SchemaManagerDep",
    "StorageDep",
    "get_access_gate",
    "get_auth_service",
    "get_document_store",
    "get_log_writer",
    "get_project_repository",
    "get_project_service",
    "get_schema_manager",
    "get_storage_manager",
]
