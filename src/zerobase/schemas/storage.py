from datetime import datetime

from pydantic import Field

from src.zerobase.schemas.base import CamelModel


class StorageInfo(CamelModel):
    project_id: str
    quota_mb: int
    used_mb: int
    available_disk_mb: int
    storage_path: str


class QuotaUpdate(CamelModel):
    new_quota_mb: int = Field(ge=1)


class QuotaUpdated(CamelModel):
    success: bool = True
    quota_mb: int
    used_mb: int
    available_disk_mb: int


class StoredFile(CamelModel):
    name: str
    size_bytes: int
    size_mb: float
    modified_at: datetime
    ext: str


class FilesResponse(CamelModel):
    files: list[StoredFile]


class UploadedFile(CamelModel):
    name: str
    original_name: str | None
    size: int
    mimetype: str | None


class UploadResponse(CamelModel):
    success: bool = True
    file: UploadedFile
