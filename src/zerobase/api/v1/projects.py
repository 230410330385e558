"""Project endpoints - provisioning, authorized origins and API keys.

These are the dashboard's endpoints and are not behind the access gate.
"""

from fastapi import APIRouter, status

from src.zerobase.api.dependencies import ProjectServiceDep
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

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post(
    "",
    response_model=ProjectCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create project",
    description="Provision a project and its own PostgreSQL database. "
    "The API key is returned in this response only.",
    responses={
        201: {"description": "Project created"},
        400: {"description": "Invalid name or quota"},
    },
)
async def create_project(data: ProjectCreate, service: ProjectServiceDep) -> ProjectCreated:
    return await service.provision(data.name, data.storage_mb)


@router.get("", response_model=list[ProjectRead], summary="List projects")
async def list_projects(service: ProjectServiceDep) -> list[ProjectRead]:
    projects = await service.list_projects()
    return [ProjectRead.model_validate(p) for p in projects]


@router.post(
    "/verify-key",
    response_model=VerifyKeyResponse,
    summary="Verify API key",
    responses={404: {"description": "Project not found"}},
)
async def verify_key(data: VerifyKeyRequest, service: ProjectServiceDep) -> VerifyKeyResponse:
    return VerifyKeyResponse(is_valid=await service.verify_key(data.project_id, data.api_key))


@router.get(
    "/{project_id}",
    response_model=ProjectRead,
    summary="Get project",
    responses={404: {"description": "Project not found"}},
)
async def get_project(project_id: str, service: ProjectServiceDep) -> ProjectRead:
    return ProjectRead.model_validate(await service.get_project(project_id))


@router.get("/{project_id}/urls", response_model=AuthorizedUrlsResponse, summary="List origins")
async def list_urls(project_id: str, service: ProjectServiceDep) -> AuthorizedUrlsResponse:
    return AuthorizedUrlsResponse(urls=await service.list_urls(project_id))


@router.post(
    "/{project_id}/urls",
    response_model=AuthorizedUrlsResponse,
    summary="Authorize origin",
    description="Add an http/https origin (no path) allowed to call this project from a browser.",
    responses={
        400: {"description": "Not a bare http/https origin"},
        404: {"description": "Project not found"},
    },
)
async def add_url(
    project_id: str, data: AuthorizedUrlRequest, service: ProjectServiceDep
) -> AuthorizedUrlsResponse:
    return AuthorizedUrlsResponse(urls=await service.add_url(project_id, data.url))


@router.delete("/{project_id}/urls", response_model=AuthorizedUrlsResponse, summary="Remove origin")
async def remove_url(
    project_id: str, data: AuthorizedUrlRequest, service: ProjectServiceDep
) -> AuthorizedUrlsResponse:
    return AuthorizedUrlsResponse(urls=await service.remove_url(project_id, data.url))


@router.post(
    "/{project_id}/regenerate-key",
    response_model=ApiKeyRotated,
    summary="Regenerate API key",
    description="Replace the project's API key. The previous key stops working immediately.",
)
async def regenerate_key(project_id: str, service: ProjectServiceDep) -> ApiKeyRotated:
    return ApiKeyRotated(api_key=await service.regenerate_key(project_id))
