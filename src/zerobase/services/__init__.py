from src.zerobase.services.access_gate import AccessDecision, AccessGate, AccessRule
from src.zerobase.services.auth_service import TenantAuthService
from src.zerobase.services.document_service import DocumentStore
from src.zerobase.services.log_service import TenantLogWriter
from src.zerobase.services.project_service import ProjectService
from src.zerobase.services.schema_service import MigrationResult, SchemaManager
from src.zerobase.services.storage_service import StorageQuotaManager

__all__ = [
    "AccessDecision",
    "AccessGate",
    "AccessRule",
    "DocumentStore",
    "MigrationResult",
    "ProjectService",
    "SchemaManager",
    "StorageQuotaManager",
    "TenantAuthService",
    "TenantLogWriter",
]
