"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.zerobase.api.dependencies.db import AdminConnection, DBSession, TenantConnection
from src.zerobase.api.dependencies.realtime import Realtime
from src.zerobase.repositories import ProjectRepository
from src.zerobase.services import (
    AccessGate,
    DocumentStore,
    ProjectService,
    SchemaManager,
    StorageQuotaManager,
    TenantAuthService,
    TenantLogWriter,
)


def get_project_repository(session: DBSession) -> ProjectRepository:
    return ProjectRepository(session)


ProjectRepo = Annotated[ProjectRepository, Depends(get_project_repository)]


def get_schema_manager(connector: TenantConnection) -> SchemaManager:
    return SchemaManager(connector)


def get_log_writer(connector: TenantConnection) -> TenantLogWriter:
    return TenantLogWriter(connector)


def get_storage_manager(session: DBSession) -> StorageQuotaManager:
    return StorageQuotaManager(session)


SchemaManagerDep = Annotated[SchemaManager, Depends(get_schema_manager)]
LogWriterDep = Annotated[TenantLogWriter, Depends(get_log_writer)]
StorageDep = Annotated[StorageQuotaManager, Depends(get_storage_manager)]


def get_project_service(
    project_repo: ProjectRepo,
    session: DBSession,
    schema: SchemaManagerDep,
    storage: StorageDep,
    admin: AdminConnection,
) -> ProjectService:
    """Get project service."""
    return ProjectService(project_repo, session, schema, storage, admin)


ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]


def get_access_gate(projects: ProjectServiceDep) -> AccessGate:
    return AccessGate(projects)


def get_document_store(
    connector: TenantConnection,
    notifier: Realtime,
    log_writer: LogWriterDep,
) -> DocumentStore:
    """Get document store wired to the realtime notifier and the tenant log."""
    return DocumentStore(connector, notifier, log_writer)


def get_auth_service(connector: TenantConnection, log_writer: LogWriterDep) -> TenantAuthService:
    return TenantAuthService(connector, log_writer)


AccessGateDep = Annotated[AccessGate, Depends(get_access_gate)]
DocumentStoreDep = Annotated[DocumentStore, Depends(get_document_store)]
AuthServiceDep = Annotated[TenantAuthService, Depends(get_auth_service)]
