"""Schema exports."""

from src.zerobase.schemas.auth import (
    AuthInitRequest,
    AuthResponse,
    ExpiryUpdate,
    GoogleAuthRequest,
    LoginRequest,
    OtpSetupRequest,
    OtpSetupResponse,
    SignupRequest,
)
from src.zerobase.schemas.base import CamelModel, SuccessResponse
from src.zerobase.schemas.database import (
    ColumnCreate,
    ColumnInfo,
    DocumentCreate,
    DocumentsResponse,
    ExtensionInfo,
    ExtensionRequest,
    ExtensionsResponse,
    IndexCreate,
    IndexCreated,
    IndexesResponse,
    IndexInfo,
    ProjectScoped,
    TableCreate,
    TableInfo,
    TablesResponse,
)
from src.zerobase.schemas.project import (
    ApiKeyRotated,
    AuthorizedUrlRequest,
    AuthorizedUrlsResponse,
    ProjectCreate,
    ProjectCreated,
    ProjectRead,
    VerifyKeyRequest,
    VerifyKeyResponse,
)
from src.zerobase.schemas.storage import (
    FilesResponse,
    QuotaUpdate,
    QuotaUpdated,
    StorageInfo,
    StoredFile,
    UploadedFile,
    UploadResponse,
)

__all__ = [
    "ApiKeyRotated",
    "AuthInitRequest",
    "AuthResponse",
    "AuthorizedUrlRequest",
    "AuthorizedUrlsResponse",
    "CamelModel",
    "ColumnCreate",
    "ColumnInfo",
    "DocumentCreate",
    "DocumentsResponse",
    "ExpiryUpdate",
    "ExtensionInfo",
    "ExtensionRequest",
    "ExtensionsResponse",
    "FilesResponse",
    "GoogleAuthRequest",
    "IndexCreate",
    "IndexCreated",
    "IndexInfo",
    "IndexesResponse",
    "LoginRequest",
    "OtpSetupRequest",
    "OtpSetupResponse",
    "ProjectCreate",
    "ProjectCreated",
    "ProjectRead",
    "ProjectScoped",
    "QuotaUpdate",
    "QuotaUpdated",
    "SignupRequest",
    "StorageInfo",
    "StoredFile",
    "SuccessResponse",
    "TableCreate",
    "TableInfo",
    "TablesResponse",
    "UploadResponse",
    "UploadedFile",
    "VerifyKeyRequest",
    "VerifyKeyResponse",
]
