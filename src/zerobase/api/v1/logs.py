from typing import Annotated, Any

from fastapi import APIRouter, Query

from src.zerobase.api.dependencies import GatedProject, LogWriterDep

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get(
    "",
    summary="List tenant logs",
    description="Rows of the project's logs table, newest first.",
)
async def list_logs(
    access: GatedProject,
    logs: LogWriterDep,
    limit: Annotated[int, Query(ge=1, le=500)] = 10,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[dict[str, Any]]:
    return await logs.list_logs(access.project_id, limit, offset)
