"""Project file storage endpoints."""

from typing import Annotated

from fastapi import APIRouter, File, Path, UploadFile
from fastapi.responses import FileResponse

from src.zerobase.api.dependencies import GatedProject, LogWriterDep, StorageDep
from src.zerobase.schemas.base import SuccessResponse
from src.zerobase.schemas.storage import (
    FilesResponse,
    QuotaUpdate,
    QuotaUpdated,
    StorageInfo,
    UploadResponse,
)

router = APIRouter(prefix="/storage", tags=["storage"])

ProjectIdPath = Annotated[str, Path(alias="projectId")]


@router.get("/{projectId}", response_model=StorageInfo, summary="Storage usage")
async def get_storage_info(
    project_id: ProjectIdPath, access: GatedProject, storage: StorageDep
) -> StorageInfo:
    return StorageInfo.model_validate(await storage.get_info(access.project))


@router.put(
    "/{projectId}/quota",
    response_model=QuotaUpdated,
    summary="Update quota",
    responses={400: {"description": "Below current usage or above free disk space"}},
)
async def update_quota(
    project_id: ProjectIdPath,
    data: QuotaUpdate,
    access: GatedProject,
    storage: StorageDep,
    audit: LogWriterDep,
) -> QuotaUpdated:
    async with audit.record(
        access.project_id,
        f"/api/storage/{access.project_id}/quota",
        "PUT",
        "Storage quota updated",
        {"quota_mb": data.new_quota_mb},
    ):
        result = await storage.update_quota(access.project, data.new_quota_mb)
    return QuotaUpdated.model_validate(result)


@router.post(
    "/{projectId}/files",
    response_model=UploadResponse,
    summary="Upload file",
    responses={400: {"description": "Unsupported type, too large, or quota exceeded"}},
)
async def upload_file(
    project_id: ProjectIdPath,
    access: GatedProject,
    storage: StorageDep,
    audit: LogWriterDep,
    file: Annotated[UploadFile, File()],
) -> UploadResponse:
    async with audit.record(
        access.project_id,
        f"/api/storage/{access.project_id}/files",
        "POST",
        "File uploaded",
        {"filename": file.filename, "mimetype": file.content_type},
    ):
        stored = await storage.save_upload(access.project, file)
    return UploadResponse.model_validate({"file": stored})


@router.get("/{projectId}/files", response_model=FilesResponse, summary="List files")
async def list_files(
    project_id: ProjectIdPath, access: GatedProject, storage: StorageDep
) -> FilesResponse:
    return FilesResponse.model_validate({"files": await storage.list_files(access.project_id)})


@router.get(
    "/{projectId}/files/{filename}",
    response_class=FileResponse,
    summary="Download file",
    responses={404: {"description": "File not found"}},
)
async def download_file(
    project_id: ProjectIdPath, filename: str, access: GatedProject, storage: StorageDep
) -> FileResponse:
    path = storage.file_path(access.project_id, filename)
    return FileResponse(path, filename=path.name)


@router.delete(
    "/{projectId}/files/{filename}",
    response_model=SuccessResponse,
    summary="Delete file",
    responses={404: {"description": "File not found"}},
)
async def delete_file(
    project_id: ProjectIdPath,
    filename: str,
    access: GatedProject,
    storage: StorageDep,
    audit: LogWriterDep,
) -> SuccessResponse:
    async with audit.record(
        access.project_id,
        f"/api/storage/{access.project_id}/files/{filename}",
        "DELETE",
        "File deleted",
        {"filename": filename},
    ):
        await storage.delete_file(access.project_id, filename)
    return SuccessResponse()
